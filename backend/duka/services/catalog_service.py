# backend/duka/services/catalog_service.py
"""
Catalog Service - categories and products

Referential integrity: a product's category must exist before the product is
written. Numeric fields (prices, VAT, stock) are never negative.

Product writes go through unit_of_work because update_product and
restock_product are catalog-level stock edits and must not interleave with a
sale's check-and-decrement.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import CategoryNotFound, ProductNotFound, DuplicateName, ValidationError
from ..models import Category, Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    normalize_money_fields,
    coerce_int,
)
from .unit_of_work import unit_of_work, lock_for_update

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category_id",
        "purchase_price_cents",
        "selling_price_cents",
        "vat",
        "stock_level",
        "supplier_name",
    },
    required_on_create={
        "name",
        "category_id",
        "purchase_price_cents",
        "selling_price_cents",
        "vat",
        "stock_level",
        "supplier_name",
    },
)

PRODUCT_MONEY_FIELDS = {
    "purchase_price": "purchase_price_cents",
    "selling_price": "selling_price_cents",
}

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields


def _clean_product_payload(payload: dict | None, *, partial: bool) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    patch = validate_payload(
        model=Product,
        payload=normalize_money_fields(payload, PRODUCT_MONEY_FIELDS),
        policy=PRODUCT_POLICY,
        partial=partial,
    )
    enforce_rules_product(patch, vat_rates=tuple(current_app.config.get("VAT_RATES", ())))
    return patch


def _require_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound(category_id)
    return category


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def create_category(name, description=None) -> Category:
    """Create a category; names are unique (case-insensitive)."""
    patch = validate_payload(
        model=Category,
        payload={"name": name, "description": description},
        policy=CATEGORY_POLICY,
        partial=False,
    )

    with unit_of_work() as session:
        existing = (
            session.query(Category)
            .filter(func.lower(Category.name) == patch["name"].lower())
            .first()
        )
        if existing:
            raise DuplicateName("Category name already exists", details={"name": patch["name"]})

        category = Category(name=patch["name"], description=patch.get("description") or None)
        session.add(category)
        session.flush()

    current_app.logger.info("Created category %s (%s)", category.id, category.name)
    return category


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()


def get_category(category_id) -> Category:
    return _require_category(coerce_int("category_id", category_id))


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def list_products(category_id: int | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id) -> Product:
    product = db.session.get(Product, coerce_int("product_id", product_id))
    if product is None:
        raise ProductNotFound(product_id)
    return product


def create_product(payload: dict) -> Product:
    """
    Create product from an API-shaped payload.

    Payload keys: name, category_id, purchase_price, selling_price, vat,
    stock_level, supplier_name. Prices are decimals; they are stored in cents.

    Raises:
        ValidationError: missing/blank/negative fields, VAT not allowed
        CategoryNotFound: category_id does not resolve
    """
    patch = _clean_product_payload(payload, partial=False)

    with unit_of_work() as session:
        _require_category(patch["category_id"])
        p = Product()
        apply_product_patch(p, patch)
        session.add(p)
        session.flush()

    current_app.logger.info("Created product %s (%s) with stock %s", p.id, p.name, p.stock_level)
    return p


def update_product(product_id, payload: dict) -> Product:
    """
    Partial update with the same validation as create.

    Setting stock_level here is a catalog-level stock edit: it resets the
    baseline the sale ledger is reconciled against.
    """
    product_id = coerce_int("product_id", product_id)
    patch = _clean_product_payload(payload, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    with unit_of_work() as session:
        p = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if p is None:
            raise ProductNotFound(product_id)
        if "category_id" in patch:
            _require_category(patch["category_id"])
        apply_product_patch(p, patch)

    current_app.logger.info("Updated product %s fields: %s", product_id, ", ".join(sorted(patch.keys())))
    return p


def restock_product(product_id, quantity) -> Product:
    """Add delivered units to a product's stock."""
    product_id = coerce_int("product_id", product_id)
    qty = coerce_int("quantity", quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0")

    with unit_of_work() as session:
        p = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if p is None:
            raise ProductNotFound(product_id)
        p.stock_level += qty

    current_app.logger.info("Restocked product %s by %s", product_id, qty)
    return p
