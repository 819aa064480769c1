from flask import Blueprint, jsonify, request, current_app

from duka.decorators import require_auth, require_role
from duka.errors import PosError
from duka.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _bucket_report(fn, label: str):
    try:
        return jsonify({"success": True, "report": fn()}), 200
    except Exception:
        current_app.logger.exception("Failed to generate %s sales report", label)
        return jsonify({"success": False, "message": "An error occurred while generating the report."}), 500


@reports_bp.get("/daily")
@require_auth
def daily_sales_report():
    return _bucket_report(reporting_service.daily_totals, "daily")


@reports_bp.get("/monthly")
@require_auth
def monthly_sales_report():
    return _bucket_report(reporting_service.monthly_totals, "monthly")


@reports_bp.get("/yearly")
@require_auth
def yearly_sales_report():
    return _bucket_report(reporting_service.yearly_totals, "yearly")


@reports_bp.get("/sales")
@require_auth
def sales_range_report():
    start = request.args.get("startDate") or request.args.get("start")
    end = request.args.get("endDate") or request.args.get("end")
    if not start or not end:
        return jsonify({"success": False, "message": "startDate and endDate are required"}), 400

    try:
        sales = reporting_service.range_report(start, end)
        return jsonify({"success": True, "sales": sales}), 200
    except PosError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/profit")
@require_auth
def profit_analysis():
    try:
        return jsonify({"success": True, "data": reporting_service.profit_snapshot()}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch profit analysis")
        return jsonify({"success": False, "message": "Failed to fetch profit data"}), 500


@reports_bp.get("/products")
@require_auth
def products_report():
    return jsonify({"success": True, "products": reporting_service.products_report()}), 200


@reports_bp.get("/categories")
@require_auth
def categories_report():
    return jsonify({"success": True, "categories": reporting_service.categories_report()}), 200


@reports_bp.get("/users")
@require_auth
@require_role("admin")
def users_report():
    return jsonify({"success": True, "users": reporting_service.users_report()}), 200
