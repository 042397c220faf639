# Overview: Service-layer operations for kitchen production batches; encapsulates business logic and database work.

"""
Central kitchen production batches.

LIFECYCLE:
1. PLANNED: code, product and planned_quantity recorded
2. PRODUCED: produced_quantity and production/expiry dates recorded
3. STOCKED: central inventory row created (the batch becomes allocatable)
4. CANCELLED: abandoned while PLANNED or PRODUCED
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import BatchStatus, Inventory, Product, ProductBatch
from ..validation import (
    BATCH_CODE_RE,
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    normalize_code,
    require_dict,
)
from .catalog_service import central_store_id as resolve_central_store_id
from .concurrency import lock_for_update, run_in_transaction
from .inventory_service import compute_expiry_status
from ckms.time_utils import parse_iso_date, today


CANCELLABLE_BATCH_STATUSES = (BatchStatus.PLANNED, BatchStatus.PRODUCED)


def _get_batch_for_update(batch_id: int) -> ProductBatch:
    batch = lock_for_update(db.session.query(ProductBatch).filter_by(id=batch_id)).first()
    if batch is None:
        raise NotFoundError(f"Batch {batch_id} not found")
    return batch


def get_batch(batch_id: int) -> ProductBatch:
    batch = db.session.get(ProductBatch, batch_id)
    if batch is None:
        raise NotFoundError(f"Batch {batch_id} not found")
    return batch


def list_batches(status: str | None = None, product_id: int | None = None) -> list[ProductBatch]:
    query = db.session.query(ProductBatch)
    if status:
        try:
            query = query.filter(ProductBatch.status == BatchStatus(status.upper()))
        except ValueError:
            raise ValidationError(f"Unknown batch status {status}")
    if product_id is not None:
        query = query.filter(ProductBatch.product_id == product_id)
    return query.order_by(ProductBatch.created_at.desc(), ProductBatch.id.desc()).all()


def create_batch_plans(plans: list[dict]) -> list[ProductBatch]:
    """
    Create several PLANNED batches at once; all or nothing.

    Each plan: {"code", "product_id", "planned_quantity"}. Codes are
    upper-cased and must be unique within the request and in storage.
    """
    if not isinstance(plans, list) or not plans:
        raise ValidationError("batches must be a non-empty list")

    normalized = []
    for raw in plans:
        plan = require_dict(raw, "batch plan")
        code = normalize_code(plan.get("code"), "Batch code", BATCH_CODE_RE, "BATCH-YYYYMM-XXX")
        planned_quantity = coerce_int(plan.get("planned_quantity"), "planned_quantity")
        if planned_quantity <= 0:
            raise ValidationError("Planned quantity must be greater than 0")
        product_id = coerce_int(plan.get("product_id"), "product_id")
        normalized.append((code, product_id, planned_quantity))

    codes = [code for code, _, _ in normalized]
    duplicates = sorted({code for code in codes if codes.count(code) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate batch codes in request: {', '.join(duplicates)}")

    def _op():
        created = []
        for code, product_id, planned_quantity in normalized:
            if db.session.query(ProductBatch).filter_by(code=code).first():
                raise ConflictError(f"Batch code {code} already exists")
            if db.session.get(Product, product_id) is None:
                raise NotFoundError(f"Product {product_id} not found")

            batch = ProductBatch(
                code=code,
                product_id=product_id,
                planned_quantity=planned_quantity,
                status=BatchStatus.PLANNED,
            )
            db.session.add(batch)
            created.append(batch)

        db.session.flush()
        current_app.logger.info("Planned %d production batches", len(created))
        return created

    return run_in_transaction(_op)


def produce_batch(
    batch_id: int,
    produced_quantity,
    production_date,
    expired_date,
) -> ProductBatch:
    """Record production of a PLANNED batch."""
    produced_quantity = coerce_int(produced_quantity, "produced_quantity")
    try:
        prod_date: date | None = parse_iso_date(production_date)
        exp_date: date | None = parse_iso_date(expired_date)
    except ValueError:
        raise ValidationError("Dates must be ISO-8601 (YYYY-MM-DD)")
    if prod_date is None or exp_date is None:
        raise ValidationError("production_date and expired_date are required")

    def _op():
        batch = _get_batch_for_update(batch_id)

        if batch.status != BatchStatus.PLANNED:
            raise ConflictError("Only PLANNED batches can be produced")

        if produced_quantity <= 0 or produced_quantity > batch.planned_quantity:
            raise ValidationError(f"Produced quantity must be between 1 and {batch.planned_quantity}")

        current = today()
        if prod_date > current:
            raise ValidationError("Production date cannot be in the future")
        if exp_date <= current:
            raise ValidationError("Expired date must be after today")
        if exp_date <= prod_date:
            raise ValidationError("Expired date must be after production date")

        batch.produced_quantity = produced_quantity
        batch.production_date = prod_date
        batch.expired_date = exp_date
        batch.status = BatchStatus.PRODUCED
        db.session.flush()

        current_app.logger.info("Batch %s produced: %d units", batch.code, produced_quantity)
        return batch

    return run_in_transaction(_op)


def stock_batch(batch_id: int, stocked_quantity, central_store_id: int | None = None) -> ProductBatch:
    """
    Move a PRODUCED batch into central kitchen inventory.

    Creates exactly one central inventory row for the batch.
    """
    stocked_quantity = coerce_int(stocked_quantity, "stocked_quantity")
    store_id = resolve_central_store_id(central_store_id)

    def _op():
        batch = _get_batch_for_update(batch_id)

        if batch.status != BatchStatus.PRODUCED:
            raise ConflictError("Only PRODUCED batches can be stocked")

        if not batch.produced_quantity or stocked_quantity <= 0 or stocked_quantity > batch.produced_quantity:
            raise ValidationError(f"Stocked quantity must be between 1 and {batch.produced_quantity}")

        existing = db.session.query(Inventory).filter_by(store_id=store_id, batch_id=batch.id).first()
        if existing:
            raise ConflictError("Batch has already been stocked")

        db.session.add(Inventory(
            store_id=store_id,
            batch_id=batch.id,
            quantity=stocked_quantity,
            status=compute_expiry_status(batch.expired_date),
        ))
        batch.status = BatchStatus.STOCKED
        db.session.flush()

        current_app.logger.info(
            "Batch %s stocked into store %s: %d units", batch.code, store_id, stocked_quantity
        )
        return batch

    return run_in_transaction(_op)


def cancel_batch(batch_id: int) -> ProductBatch:
    def _op():
        batch = _get_batch_for_update(batch_id)
        if batch.status not in CANCELLABLE_BATCH_STATUSES:
            raise ConflictError("Only PLANNED or PRODUCED batches can be cancelled")

        batch.status = BatchStatus.CANCELLED
        db.session.flush()
        current_app.logger.info("Batch %s cancelled", batch.code)
        return batch

    return run_in_transaction(_op)
