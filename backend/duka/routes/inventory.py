# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import catalog_service, reporting_service
from ..decorators import require_auth, require_role


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
def inventory_data_route():
    """Stock level per product; success is false when the catalog is empty."""
    try:
        data = reporting_service.inventory_data()
    except Exception:
        current_app.logger.exception("Failed to fetch inventory data")
        return jsonify({"success": False, "message": "Failed to fetch inventory data."}), 500

    if not data:
        return jsonify({"success": False, "message": "No products found in the inventory."}), 200
    return jsonify({"success": True, "data": data}), 200


@inventory_bp.get("/status")
@require_auth
def inventory_status_route():
    threshold = request.args.get("threshold", type=int)
    return jsonify({"success": True, **reporting_service.inventory_status(threshold)}), 200


@inventory_bp.post("/<int:product_id>/restock")
@require_auth
@require_role("admin")
def restock_route(product_id: int):
    """
    Receive stock for a product.

    Body: quantity (> 0)
    Available to: admin
    """
    data = request.get_json(silent=True) or {}
    if data.get("quantity") is None:
        return jsonify({"success": False, "message": "quantity required"}), 400

    try:
        product = catalog_service.restock_product(product_id, data["quantity"])
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"success": False, "message": "Internal server error"}), 500
