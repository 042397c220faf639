# Overview: Flask API routes for supply order operations; parses input and returns JSON responses.

"""
Supply Order Routes

SECURITY: All routes require authentication. The service layer checks the
caller's role permission first, then the store scope of the target order.
- Store Staff: create, confirm-received, stock, cancel (own store only)
- Central Staff: review, start-delivery, cancel (any order)
- Admin: read-only
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import supply_order_service
from ..services.concurrency import commit_or_conflict
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, NotFoundError, ValidationError


supply_orders_bp = Blueprint("supply_orders", __name__, url_prefix="/api/supply-orders")

DOMAIN_ERRORS = (ValidationError, NotFoundError, ConflictError, PermissionDeniedError)


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _summary_response(order, status_code: int = 200):
    return jsonify(supply_order_service.supply_order_summary(order)), status_code


@supply_orders_bp.get("")
@require_auth
def list_supply_orders_route():
    """
    List supply orders visible to the caller.

    Query parameters:
    - store_id: Filter by store (Store Staff: own store only)
    - status: Filter by status
    """
    try:
        orders = supply_order_service.list_supply_orders(
            g.caller,
            store_id=request.args.get("store_id", type=int),
            status=request.args.get("status"),
        )
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
    except DOMAIN_ERRORS as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list supply orders")
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.get("/<int:order_id>")
@require_auth
def get_supply_order_route(order_id: int):
    """Order with items, allocation lines and available central quantity per item."""
    try:
        order = supply_order_service.get_supply_order(g.caller, order_id)
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("")
@require_auth
def create_supply_order_route():
    """
    Submit a supply order for the caller's store.

    Request body:
    {
        "code": "SO-202601-0001",
        "items": [{"product_id": 1, "requested_quantity": 10}, ...]
    }
    """
    data = _payload()
    try:
        order = supply_order_service.create_supply_order(
            g.caller,
            data.get("code") or data.get("supply_order_code"),
            data.get("items"),
        )
        commit_or_conflict()
        return _summary_response(order, 201)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create supply order")
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("/<int:order_id>/review")
@require_auth
def review_supply_order_route(order_id: int):
    """
    Review every item of a SUBMITTED order.

    Request body:
    {
        "items": [
            {"supply_order_item_id": 1, "action": "APPROVE"},
            {"supply_order_item_id": 2, "action": "PARTLY_APPROVE", "approved_quantity": 5},
            {"supply_order_item_id": 3, "action": "REJECT"}
        ]
    }
    """
    try:
        order = supply_order_service.review_supply_order(g.caller, order_id, _payload().get("items"))
        commit_or_conflict()
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to review supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("/<int:order_id>/start-delivery")
@require_auth
def start_delivery_route(order_id: int):
    try:
        order = supply_order_service.start_delivery(g.caller, order_id)
        commit_or_conflict()
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to start delivery of supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("/<int:order_id>/confirm-received")
@require_auth
def confirm_received_route(order_id: int):
    """
    Request body:
    {"batches": [{"item_batch_id": 1, "receipted_quantity": 15}, ...]}
    """
    try:
        order = supply_order_service.confirm_received(g.caller, order_id, _payload().get("batches"))
        commit_or_conflict()
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to confirm receipt of supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("/<int:order_id>/stock")
@require_auth
def stock_supply_order_route(order_id: int):
    """
    Request body:
    {"batches": [{"item_batch_id": 1, "stocked_quantity": 15}, ...]}
    """
    try:
        order = supply_order_service.stock_supply_order(g.caller, order_id, _payload().get("batches"))
        commit_or_conflict()
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to stock supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@supply_orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_supply_order_route(order_id: int):
    try:
        order = supply_order_service.cancel_supply_order(g.caller, order_id, _payload().get("reason"))
        commit_or_conflict()
        return _summary_response(order)
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel supply order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500
