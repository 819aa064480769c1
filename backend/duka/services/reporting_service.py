# Overview: Service-layer operations for reporting; read-only aggregation over the sale ledger.

"""
Reporting Engine

Pure reads over the sale ledger joined with products. Nothing here takes the
unit-of-work lock: a report reflects some committed state of the ledger,
which may or may not include a sale committing concurrently.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from duka.extensions import db
from duka.errors import ValidationError
from duka.models import Category, Product, Sale, User
from duka.time_utils import day_start, month_bounds, parse_iso_date, to_utc_naive, utcnow, year_bounds
from duka.validation import cents_to_money

BUCKET_FORMATS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
    "year": "%Y",
}


def _bucket_totals(group_by: str) -> list[dict]:
    fmt = BUCKET_FORMATS.get(group_by)
    if fmt is None:
        raise ValidationError("group_by must be day, month, or year")

    period = func.strftime(fmt, Sale.sale_date)
    rows = (
        db.session.query(
            period.label("sale_date"),
            func.coalesce(func.sum(Sale.total_price_cents), 0).label("total_cents"),
        )
        .group_by(period)
        .order_by(period)
        .all()
    )
    # Sparse: periods without sales never appear in a GROUP BY result
    return [
        {"sale_date": row.sale_date, "totalSales": cents_to_money(int(row.total_cents or 0))}
        for row in rows
    ]


def daily_totals() -> list[dict]:
    return _bucket_totals("day")


def monthly_totals() -> list[dict]:
    return _bucket_totals("month")


def yearly_totals() -> list[dict]:
    return _bucket_totals("year")


def _parse_bound(name: str, value) -> date:
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{name} is required")
    try:
        parsed = parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date", details={name: value})
    if parsed is None:
        raise ValidationError(f"{name} is required")
    return parsed


def range_report(start_date, end_date) -> list[dict]:
    """
    Individual sales whose calendar date falls in [start_date, end_date],
    joined with product name, oldest first.
    """
    start = _parse_bound("start_date", start_date)
    end = _parse_bound("end_date", end_date)
    if start > end:
        raise ValidationError("start_date must be on or before end_date")

    sales = (
        db.session.query(Sale)
        .options(joinedload(Sale.product))
        .filter(
            Sale.sale_date >= day_start(start),
            Sale.sale_date < day_start(end + timedelta(days=1)),
        )
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )
    return [s.to_dict() for s in sales]


def _sum_between(start: datetime, end: datetime) -> float:
    total = (
        db.session.query(func.coalesce(func.sum(Sale.total_price_cents), 0))
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .scalar()
    )
    return cents_to_money(int(total or 0))


def profit_snapshot(today: date | None = None) -> dict:
    """Today's, this month's and this year's summed totals (UTC calendar)."""
    today = today or utcnow().date()

    start_of_day = day_start(today)
    return {
        "daily": _sum_between(start_of_day, start_of_day + timedelta(days=1)),
        "monthly": _sum_between(*month_bounds(today)),
        "yearly": _sum_between(*year_bounds(today)),
    }


def sales_history() -> list[dict]:
    """Every ledger row with its product name, newest first."""
    sales = (
        db.session.query(Sale)
        .options(joinedload(Sale.product))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    return [s.to_dict() for s in sales]


def inventory_data() -> list[dict]:
    products = db.session.query(Product.id, Product.name, Product.stock_level).order_by(Product.id.asc()).all()
    return [{"id": p.id, "name": p.name, "stock_level": p.stock_level} for p in products]


def inventory_status(threshold: int | None = None) -> dict:
    """Total units on hand plus the products at or below the low-stock threshold."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

    rows = inventory_data()
    return {
        "threshold": threshold,
        "total_stock": sum(r["stock_level"] for r in rows),
        "low_stock": [r for r in rows if r["stock_level"] <= threshold],
    }


def products_report() -> list[dict]:
    products = (
        db.session.query(Product)
        .options(joinedload(Product.category))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def categories_report() -> list[dict]:
    rows = (
        db.session.query(Category, func.count(Product.id).label("product_count"))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )
    return [{**category.to_dict(), "product_count": int(count)} for category, count in rows]


def users_report() -> list[dict]:
    users = db.session.query(User).order_by(User.username.asc(), User.id.asc()).all()
    return [{"id": u.id, "username": u.username, "email": u.email, "role": u.role} for u in users]
