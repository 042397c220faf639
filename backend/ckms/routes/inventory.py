# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory routes.

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY (Store Staff: own store only)
- Disposal requires DISPOSE_INVENTORY; reason and store rules are enforced
  by inventory_service.dispose_inventory
- The expiry sweep requires REFRESH_INVENTORY_STATUS
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..extensions import db
from ..services import catalog_service, inventory_service
from ..services.concurrency import commit_or_conflict
from ..services.permission_service import PermissionDeniedError, ensure_store_access
from ..validation import ConflictError, NotFoundError, ValidationError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/stores/<int:store_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_store_inventory_route(store_id: int):
    """
    Inventory of one store with batch and product details.

    Expiry statuses are refreshed first, so the listing is current.
    """
    try:
        ensure_store_access(g.caller, store_id)
        catalog_service.get_store(store_id)

        inventory_service.refresh_expiry_statuses()
        commit_or_conflict()

        rows = inventory_service.list_store_inventory(store_id)
        return jsonify({"items": [row.to_dict() for row in rows], "count": len(rows)}), 200
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to list inventory for store %s", store_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:inventory_id>/dispose")
@require_auth
@require_permission("DISPOSE_INVENTORY")
def dispose_inventory_route(inventory_id: int):
    """
    Request body:
    {"reason": "EXPIRED" | "WRONG_DATA" | "DEFECTIVE"}
    """
    data = request.get_json(silent=True) or {}
    try:
        row = inventory_service.dispose_inventory(
            g.caller, inventory_id, data.get("reason") or data.get("disposed_reason")
        )
        commit_or_conflict()
        return jsonify(row.to_dict()), 200
    except PermissionDeniedError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to dispose inventory %s", inventory_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/refresh-statuses")
@require_auth
@require_permission("REFRESH_INVENTORY_STATUS")
def refresh_statuses_route():
    try:
        changed = inventory_service.refresh_expiry_statuses()
        commit_or_conflict()
        return jsonify({"updated": changed}), 200
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to refresh inventory statuses")
        return jsonify({"error": "Internal server error"}), 500
