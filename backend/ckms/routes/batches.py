# Overview: Flask API routes for kitchen production batches; parses input and returns JSON responses.

"""
Production batch routes (central kitchen).

SECURITY: All routes require authentication.
- View operations require VIEW_BATCHES
- Plan/produce/stock/cancel require MANAGE_BATCHES
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..extensions import db
from ..services import batch_service
from ..services.concurrency import commit_or_conflict
from ..validation import ConflictError, NotFoundError, ValidationError


batches_bp = Blueprint("batches", __name__, url_prefix="/api/batches")


def _error(e):
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


@batches_bp.get("")
@require_auth
@require_permission("VIEW_BATCHES")
def list_batches_route():
    """
    Query parameters:
    - status: PLANNED, PRODUCED, STOCKED or CANCELLED
    - product_id: Filter by product
    """
    try:
        batches = batch_service.list_batches(
            status=request.args.get("status"),
            product_id=request.args.get("product_id", type=int),
        )
        return jsonify({"items": [b.to_dict() for b in batches], "count": len(batches)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@batches_bp.get("/<int:batch_id>")
@require_auth
@require_permission("VIEW_BATCHES")
def get_batch_route(batch_id: int):
    try:
        return jsonify(batch_service.get_batch(batch_id).to_dict()), 200
    except NotFoundError as e:
        return _error(e)


@batches_bp.post("")
@require_auth
@require_permission("MANAGE_BATCHES")
def create_batch_plans_route():
    """
    Request body:
    {"batches": [{"code": "BATCH-202601-A01", "product_id": 1, "planned_quantity": 100}, ...]}
    """
    data = request.get_json(silent=True) or {}
    try:
        batches = batch_service.create_batch_plans(data.get("batches"))
        commit_or_conflict()
        return jsonify({"items": [b.to_dict() for b in batches]}), 201
    except (ValidationError, NotFoundError, ConflictError) as e:
        db.session.rollback()
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create batch plans")
        return jsonify({"error": "Internal server error"}), 500


@batches_bp.post("/<int:batch_id>/produce")
@require_auth
@require_permission("MANAGE_BATCHES")
def produce_batch_route(batch_id: int):
    """
    Request body:
    {"produced_quantity": 90, "production_date": "2026-01-10", "expired_date": "2026-01-20"}
    """
    data = request.get_json(silent=True) or {}
    try:
        batch = batch_service.produce_batch(
            batch_id,
            data.get("produced_quantity"),
            data.get("production_date"),
            data.get("expired_date"),
        )
        commit_or_conflict()
        return jsonify(batch.to_dict()), 200
    except (ValidationError, NotFoundError, ConflictError) as e:
        db.session.rollback()
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to produce batch %s", batch_id)
        return jsonify({"error": "Internal server error"}), 500


@batches_bp.post("/<int:batch_id>/stock")
@require_auth
@require_permission("MANAGE_BATCHES")
def stock_batch_route(batch_id: int):
    """Request body: {"stocked_quantity": 90}"""
    data = request.get_json(silent=True) or {}
    try:
        batch = batch_service.stock_batch(batch_id, data.get("stocked_quantity"))
        commit_or_conflict()
        return jsonify(batch.to_dict()), 200
    except (ValidationError, NotFoundError, ConflictError) as e:
        db.session.rollback()
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to stock batch %s", batch_id)
        return jsonify({"error": "Internal server error"}), 500


@batches_bp.post("/<int:batch_id>/cancel")
@require_auth
@require_permission("MANAGE_BATCHES")
def cancel_batch_route(batch_id: int):
    try:
        batch = batch_service.cancel_batch(batch_id)
        commit_or_conflict()
        return jsonify(batch.to_dict()), 200
    except (NotFoundError, ConflictError) as e:
        db.session.rollback()
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel batch %s", batch_id)
        return jsonify({"error": "Internal server error"}), 500
