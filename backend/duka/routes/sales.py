# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/duka/routes/sales.py
"""Sale recording and revocation routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import inventory_coordinator, reporting_service
from ..decorators import require_auth, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _field(data: dict, camel: str, snake: str, default=None):
    if camel in data:
        return data[camel]
    return data.get(snake, default)


@sales_bp.post("")
@require_auth
def record_sale_route():
    """
    Record a sale: decrements stock and appends a ledger row atomically.

    Body: productId, quantity, discount?, totalPrice?, paymentMethod, saleDate?
    Available to: admin, cashier
    """
    data = request.get_json(silent=True) or {}
    product_id = _field(data, "productId", "product_id")
    quantity = data.get("quantity")

    if product_id is None or quantity is None:
        return jsonify({"success": False, "message": "productId and quantity required"}), 400

    try:
        sale = inventory_coordinator.record_sale(
            product_id,
            quantity,
            discount=data.get("discount") or 0,
            total_price=_field(data, "totalPrice", "total_price"),
            payment_method=_field(data, "paymentMethod", "payment_method"),
            sale_date=_field(data, "saleDate", "sale_date"),
            user_id=g.current_user.id,
        )
        return jsonify({
            "success": True,
            "message": "Sale recorded successfully.",
            "saleId": sale.id,
            "sale": sale.to_dict(),
        }), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"success": False, "message": "An error occurred while recording the sale."}), 500


@sales_bp.get("")
@require_auth
def sales_history_route():
    """Sales history: every ledger row joined with its product name."""
    return jsonify(reporting_service.sales_history()), 200


@sales_bp.get("/quote")
@require_auth
def quote_sale_route():
    """Price a prospective sale without recording it."""
    try:
        quote = inventory_coordinator.quote_sale(
            request.args.get("productId"),
            request.args.get("quantity"),
            request.args.get("discount", "0"),
        )
        return jsonify({"success": True, "quote": quote}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = inventory_coordinator.get_sale(sale_id)
        return jsonify({"success": True, "sale": sale.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_role("admin")
def revoke_sale_route(sale_id: int):
    """
    Revoke a sale: deletes the ledger row and restores its stock.

    Available to: admin
    """
    try:
        revoked = inventory_coordinator.revoke_sale(sale_id, user_id=g.current_user.id)
        return jsonify({"success": True, "message": "Sale deleted successfully.", "sale": revoked}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to revoke sale")
        return jsonify({"success": False, "message": "Failed to revoke sale"}), 500
