# backend/backoffice/routes/inventory.py
"""
Inventory read and adjustment routes.

All reads are scoped to the actor's company. Quantities only change through
documents or POST /adjust.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import BackofficeError
from ..services import inventory_service
from ..validation import (
    coerce_int,
    parse_inventory_filter,
    parse_movement_filter,
    validate_adjustment_payload,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _page_args():
    return (
        coerce_int(request.args.get("page") or None, "page") or 1,
        coerce_int(request.args.get("limit") or None, "limit"),
    )


@inventory_bp.get("")
@require_actor
def list_inventory():
    """Query params: store_id, product_id, search, low_stock, page, limit."""
    try:
        rows, meta = inventory_service.list_inventory(g.actor, parse_inventory_filter(request.args))
        return jsonify({"data": [row.to_dict() for row in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stores/<int:store_id>")
@require_actor
def store_inventory(store_id: int):
    try:
        page, limit = _page_args()
        rows, meta = inventory_service.get_store_inventory(g.actor, store_id, page=page, limit=limit)
        return jsonify({"data": [row.to_dict() for row in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error loading inventory of store %s", store_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/products/<int:product_id>")
@require_actor
def product_inventory(product_id: int):
    try:
        return jsonify(inventory_service.get_product_inventory(g.actor, product_id)), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error loading inventory of product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_actor
def low_stock():
    try:
        store_id = coerce_int(request.args.get("store_id") or None, "store_id")
        page, limit = _page_args()
        rows, meta = inventory_service.list_low_stock(g.actor, store_id=store_id, page=page, limit=limit)
        return jsonify({"data": [row.to_dict() for row in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing low stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/movements")
@require_actor
def movements():
    """Stock movement journal, newest first."""
    try:
        rows, meta = inventory_service.list_movements(g.actor, parse_movement_filter(request.args))
        return jsonify({"data": [row.to_dict() for row in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing stock movements")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjust")
@require_actor
def adjust():
    """
    Manual stock correction.

    Request body:
    {
        "store_id": int,
        "product_id": int,
        "quantity_change": int (non-zero, signed),
        "reason": str
    }
    """
    try:
        payload = validate_adjustment_payload(request.get_json(silent=True))
        inventory = inventory_service.adjust_inventory(
            g.actor,
            store_id=payload["store_id"],
            product_id=payload["product_id"],
            delta=payload["quantity_change"],
            reason=payload["reason"],
        )
        return jsonify(inventory.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error adjusting inventory")
        return jsonify({"error": "Internal server error"}), 500
