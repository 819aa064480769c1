# Overview: Flask API routes for the shop profile; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import shop_service
from ..decorators import require_auth, require_role

shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop-owner")


@shop_bp.get("")
@require_auth
def get_shop_owner_route():
    try:
        owner = shop_service.get_shop_owner()
        return jsonify({"success": True, "shopOwner": owner.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@shop_bp.post("")
@require_auth
@require_role("admin")
def create_shop_owner_route():
    payload = request.get_json(silent=True) or {}
    try:
        owner = shop_service.create_shop_owner(payload)
        return jsonify({
            "success": True,
            "message": "Shop owner added successfully.",
            "ownerId": owner.id,
            "shopOwner": owner.to_dict(),
        }), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add shop owner")
        return jsonify({"success": False, "message": "Failed to add shop owner."}), 500


@shop_bp.put("")
@require_auth
@require_role("admin")
def update_shop_owner_route():
    payload = request.get_json(silent=True) or {}
    payload.pop("id", None)
    payload.pop("updated_at", None)
    try:
        owner = shop_service.update_shop_owner(payload)
        return jsonify({"success": True, "shopOwner": owner.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update shop owner")
        return jsonify({"success": False, "message": "Database update failed"}), 500
