# Overview: Service-layer operations for stores and products; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, Store
from ..validation import ConflictError, NotFoundError, ValidationError


def central_store_id(explicit: int | None = None) -> int:
    """
    Identifier of the central fulfillment location.

    An explicit value always wins; otherwise CENTRAL_STORE_ID from config.
    """
    if explicit is not None:
        return int(explicit)
    return int(current_app.config.get("CENTRAL_STORE_ID", 1))


def get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError(f"Store {store_id} not found")
    return store


def list_stores(include_inactive: bool = False) -> list[Store]:
    query = db.session.query(Store)
    if not include_inactive:
        query = query.filter(Store.is_active.is_(True))
    return query.order_by(Store.id.asc()).all()


def create_store(code: str, name: str, address: str | None = None) -> Store:
    """Create a store; code is upper-cased and must be unique."""
    code = (code or "").strip().upper()
    name = (name or "").strip()
    if not code:
        raise ValidationError("Store code is required")
    if not name:
        raise ValidationError("Store name is required")

    if db.session.query(Store).filter_by(code=code).first():
        raise ConflictError(f"Store code {code} already exists")

    store = Store(code=code, name=name, address=address)
    db.session.add(store)
    db.session.flush()
    return store


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def is_product_active(product_id: int) -> bool:
    """True/False for known products; NotFoundError for unknown ids."""
    return bool(get_product(product_id).is_active)


def list_products(include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.code.asc()).all()


def create_product(code: str, name: str, unit: str) -> Product:
    code = (code or "").strip().upper()
    name = (name or "").strip()
    unit = (unit or "").strip()
    if not code or not name or not unit:
        raise ValidationError("Product code, name and unit are required")

    if db.session.query(Product).filter_by(code=code).first():
        raise ConflictError(f"Product code {code} already exists")

    product = Product(code=code, name=name, unit=unit)
    db.session.add(product)
    db.session.flush()
    return product


def set_product_active(product_id: int, is_active: bool) -> Product:
    """Activate or deactivate a product. Inactive products cannot be ordered."""
    product = get_product(product_id)
    product.is_active = bool(is_active)
    db.session.flush()
    return product
