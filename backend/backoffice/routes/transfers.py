# backend/backoffice/routes/transfers.py
"""
Inter-store transfer API routes.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import BackofficeError
from ..services import transfer_service
from ..validation import parse_document_filter, validate_document_payload


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_actor
def create_transfer():
    """
    Create a transfer; stock leaves from_store and arrives at to_store.

    Request body:
    {
        "from_store_id": int,
        "to_store_id": int,
        "transfer_date": ISO-8601 (optional),
        "status": "PENDING" | "IN_TRANSIT" | "COMPLETED" | "CANCELLED" (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "quantity": int}]
    }

    Returns:
        201: Transfer created
        400: Same store on both ends, or insufficient inventory
        403: Forbidden
        404: Store or product not found
    """
    try:
        payload = validate_document_payload("transfer", request.get_json(silent=True), partial=False)
        transfer = transfer_service.create_transfer(payload, g.actor)
        return jsonify(transfer.to_dict()), 201
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error creating transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("", methods=["GET"])
@require_actor
def list_transfers():
    """Query params as for purchases; to_store_id filters by destination."""
    try:
        doc_filter = parse_document_filter(request.args, "to_store_id")
        rows, meta = transfer_service.list_transfers(g.actor, doc_filter)
        return jsonify({"data": [t.to_dict() for t in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error listing transfers")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_actor
def get_transfer(transfer_id: int):
    try:
        transfer = transfer_service.get_transfer(transfer_id, g.actor)
        return jsonify(transfer.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error loading transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>", methods=["PATCH"])
@require_actor
def update_transfer(transfer_id: int):
    try:
        payload = validate_document_payload("transfer", request.get_json(silent=True), partial=True)
        transfer = transfer_service.update_transfer(transfer_id, g.actor, payload)
        return jsonify(transfer.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error updating transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>", methods=["DELETE"])
@require_actor
def delete_transfer(transfer_id: int):
    try:
        summary = transfer_service.delete_transfer(transfer_id, g.actor)
        return jsonify({"deleted": summary}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Unexpected error deleting transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500
