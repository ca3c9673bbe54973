# backend/backoffice/routes/sales.py
"""
Sale document API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import BackofficeError
from ..services import sale_service
from ..validation import parse_document_filter, validate_document_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.route("", methods=["POST"])
@require_actor
def create_sale():
    """
    Create a sale and issue its items from the store.

    Request body:
    {
        "store_id": int,
        "customer_id": int (optional, walk-in when absent),
        "sale_date": ISO-8601 (optional),
        "discount": number (optional), "tax": number (optional),
        "paid_amount": number (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "quantity": int, "unit_price": number}]
    }

    Returns:
        201: Sale created
        400: Invalid request or insufficient inventory
        403: Forbidden
        404: Store, customer or product not found
    """
    try:
        payload = validate_document_payload("sale", request.get_json(silent=True), partial=False)
        sale = sale_service.create_sale(payload, g.actor)
        return jsonify(sale.to_dict()), 201
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error creating sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.route("", methods=["GET"])
@require_actor
def list_sales():
    try:
        doc_filter = parse_document_filter(request.args, "customer_id")
        rows, meta = sale_service.list_sales(g.actor, doc_filter)
        return jsonify({"data": [s.to_dict() for s in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@require_actor
def get_sale(sale_id: int):
    try:
        sale = sale_service.get_sale(sale_id, g.actor)
        return jsonify(sale.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error loading sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.route("/<int:sale_id>", methods=["PATCH"])
@require_actor
def update_sale(sale_id: int):
    try:
        payload = validate_document_payload("sale", request.get_json(silent=True), partial=True)
        sale = sale_service.update_sale(sale_id, g.actor, payload)
        return jsonify(sale.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error updating sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.route("/<int:sale_id>", methods=["DELETE"])
@require_actor
def delete_sale(sale_id: int):
    try:
        summary = sale_service.delete_sale(sale_id, g.actor)
        return jsonify({"deleted": summary}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error deleting sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
