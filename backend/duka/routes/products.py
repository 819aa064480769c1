# Overview: Flask API routes for products and categories; parses input and returns JSON responses.

# backend/duka/routes/products.py
"""
Catalog routes.

Reads require any authenticated user; writes require the admin role.
Prices travel as decimals (e.g. 149.99) and are stored in cents.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import catalog_service
from ..decorators import require_auth, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@products_bp.get("")
@require_auth
def list_products():
    category_id = request.args.get("category_id", type=int)
    products = catalog_service.list_products(category_id=category_id)
    return jsonify({"success": True, "products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
@require_auth
@require_role("admin")
def create_product_route():
    """
    Create a new product.

    Body: name, category_id, purchase_price, selling_price, vat, stock_level, supplier_name
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = catalog_service.create_product(payload)
        return jsonify({
            "success": True,
            "message": "Product added successfully.",
            "productId": product.id,
            "product": product.to_dict(),
        }), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"success": False, "message": "An error occurred while adding the product."}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    # Clients often echo the full record back; identity fields are not editable
    for key in ("id", "category_name", "version_id", "created_at", "updated_at"):
        payload.pop(key, None)

    try:
        product = catalog_service.update_product(product_id, payload)
        return jsonify({
            "success": True,
            "message": "Product updated successfully.",
            "product": product.to_dict(),
        }), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"success": False, "message": "Failed to update product."}), 500


@categories_bp.get("")
@require_auth
def list_categories():
    categories = catalog_service.list_categories()
    return jsonify({"success": True, "categories": [c.to_dict() for c in categories]}), 200


@categories_bp.post("")
@require_auth
@require_role("admin")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        category = catalog_service.create_category(payload.get("name"), payload.get("description"))
        return jsonify({"success": True, "categoryId": category.id, "category": category.to_dict()}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"success": False, "message": "Category creation failed"}), 500
