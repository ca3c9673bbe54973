# backend/backoffice/routes/returns.py
"""
Purchase return and sale return API routes.

Both blueprints share one shape; only the service functions, the
validation schema and the original-document filter parameter differ.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor
from ..errors import BackofficeError
from ..services import return_service
from ..validation import parse_document_filter, validate_document_payload


purchase_returns_bp = Blueprint("purchase_returns", __name__, url_prefix="/api/purchase-returns")
sale_returns_bp = Blueprint("sale_returns", __name__, url_prefix="/api/sale-returns")


def _internal_error(message: str, *args):
    current_app.logger.exception(message, *args)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Purchase returns
# =============================================================================

@purchase_returns_bp.route("", methods=["POST"])
@require_actor
def create_purchase_return():
    """
    Return purchased goods to the vendor; stock leaves the purchase's store.

    Request body:
    {
        "purchase_id": int,
        "reason": str,
        "return_date": ISO-8601 (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "quantity": int, "unit_price": number (optional)}]
    }
    """
    try:
        payload = validate_document_payload("purchase_return", request.get_json(silent=True), partial=False)
        doc = return_service.create_purchase_return(payload, g.actor)
        return jsonify(doc.to_dict()), 201
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error creating purchase return")


@purchase_returns_bp.route("", methods=["GET"])
@require_actor
def list_purchase_returns():
    try:
        doc_filter = parse_document_filter(request.args, "purchase_id")
        rows, meta = return_service.list_purchase_returns(g.actor, doc_filter)
        return jsonify({"data": [r.to_dict() for r in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error listing purchase returns")


@purchase_returns_bp.route("/<int:return_id>", methods=["GET"])
@require_actor
def get_purchase_return(return_id: int):
    try:
        doc = return_service.get_purchase_return(return_id, g.actor)
        return jsonify(doc.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error loading purchase return %s", return_id)


@purchase_returns_bp.route("/<int:return_id>", methods=["PATCH"])
@require_actor
def update_purchase_return(return_id: int):
    try:
        payload = validate_document_payload("purchase_return", request.get_json(silent=True), partial=True)
        doc = return_service.update_purchase_return(return_id, g.actor, payload)
        return jsonify(doc.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error updating purchase return %s", return_id)


@purchase_returns_bp.route("/<int:return_id>", methods=["DELETE"])
@require_actor
def delete_purchase_return(return_id: int):
    try:
        summary = return_service.delete_purchase_return(return_id, g.actor)
        return jsonify({"deleted": summary}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error deleting purchase return %s", return_id)


# =============================================================================
# Sale returns
# =============================================================================

@sale_returns_bp.route("", methods=["POST"])
@require_actor
def create_sale_return():
    """
    Take goods back from a customer; stock returns to the sale's store.

    Same body as purchase returns, with "sale_id" instead of "purchase_id".
    """
    try:
        payload = validate_document_payload("sale_return", request.get_json(silent=True), partial=False)
        doc = return_service.create_sale_return(payload, g.actor)
        return jsonify(doc.to_dict()), 201
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error creating sale return")


@sale_returns_bp.route("", methods=["GET"])
@require_actor
def list_sale_returns():
    try:
        doc_filter = parse_document_filter(request.args, "sale_id")
        rows, meta = return_service.list_sale_returns(g.actor, doc_filter)
        return jsonify({"data": [r.to_dict() for r in rows], "meta": meta}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error listing sale returns")


@sale_returns_bp.route("/<int:return_id>", methods=["GET"])
@require_actor
def get_sale_return(return_id: int):
    try:
        doc = return_service.get_sale_return(return_id, g.actor)
        return jsonify(doc.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error loading sale return %s", return_id)


@sale_returns_bp.route("/<int:return_id>", methods=["PATCH"])
@require_actor
def update_sale_return(return_id: int):
    try:
        payload = validate_document_payload("sale_return", request.get_json(silent=True), partial=True)
        doc = return_service.update_sale_return(return_id, g.actor, payload)
        return jsonify(doc.to_dict()), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error updating sale return %s", return_id)


@sale_returns_bp.route("/<int:return_id>", methods=["DELETE"])
@require_actor
def delete_sale_return(return_id: int):
    try:
        summary = return_service.delete_sale_return(return_id, g.actor)
        return jsonify({"deleted": summary}), 200
    except BackofficeError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error("Unexpected error deleting sale return %s", return_id)
