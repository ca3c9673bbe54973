# backend/backoffice/routes/purchases.py
"""
Purchase document API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import BackofficeError
from ..services import purchase_service
from ..validation import parse_document_filter, validate_document_payload


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.route("", methods=["POST"])
@require_actor
def create_purchase():
    """
    Create a purchase and receive its items into the store.

    Request body:
    {
        "store_id": int,
        "vendor_id": int,
        "purchase_date": ISO-8601 (optional),
        "paid_amount": number (optional, default 0),
        "status": "PENDING" | "COMPLETED" | "CANCELLED" (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "quantity": int, "unit_price": number}]
    }

    Returns:
        201: Purchase created
        400: Invalid request
        403: Forbidden
        404: Store, vendor or product not found
    """
    try:
        payload = validate_document_payload("purchase", request.get_json(silent=True), partial=False)
        purchase = purchase_service.create_purchase(payload, g.actor)
        return jsonify(purchase.to_dict()), 201
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error creating purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.route("", methods=["GET"])
@require_actor
def list_purchases():
    """
    List purchases of the actor's company.

    Query params: search, store_id, status, vendor_id, from_date, to_date,
    page, limit, sort_by, sort_order.
    """
    try:
        doc_filter = parse_document_filter(request.args, "vendor_id")
        rows, meta = purchase_service.list_purchases(g.actor, doc_filter)
        return jsonify({"data": [p.to_dict() for p in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing purchases")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.route("/<int:purchase_id>", methods=["GET"])
@require_actor
def get_purchase(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id, g.actor)
        return jsonify(purchase.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error loading purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.route("/<int:purchase_id>", methods=["PATCH"])
@require_actor
def update_purchase(purchase_id: int):
    """
    Update header fields; "items", when present, replaces all lines.

    Inventory received at creation is not adjusted.
    """
    try:
        payload = validate_document_payload("purchase", request.get_json(silent=True), partial=True)
        purchase = purchase_service.update_purchase(purchase_id, g.actor, payload)
        return jsonify(purchase.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error updating purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.route("/<int:purchase_id>", methods=["DELETE"])
@require_actor
def delete_purchase(purchase_id: int):
    try:
        summary = purchase_service.delete_purchase(purchase_id, g.actor)
        return jsonify({"deleted": summary}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error deleting purchase %s", purchase_id)
        return jsonify({"error": "Internal server error"}), 500
