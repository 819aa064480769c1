# Overview: Service-layer operations for sales; the only path that moves stock and the sale ledger together.

"""
Inventory Coordinator - atomic sell / revoke

A sale is a stock decrement AND a ledger row. Neither may exist without
the other, so both run inside one unit_of_work: the stock check, the
decrement and the insert commit together or not at all.

Revocation is the inverse: delete the ledger row, give the quantity back to
the product's current stock. Once the row is gone a repeat revoke fails with
SaleNotFound, which is what prevents double restoration.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..errors import ProductNotFound, SaleNotFound, InsufficientStock, ValidationError
from ..models import Product, Sale
from ..validation import (
    coerce_int,
    enforce_rules_sale,
    money_to_cents,
    percent_to_bps,
    cents_to_money,
)
from duka.time_utils import parse_iso_datetime, to_utc_naive, utcnow
from .unit_of_work import unit_of_work, lock_for_update

POLICY_VERIFY = "verify"
POLICY_TRUST = "trust"

# Caller totals may differ from ours by at most one cent (client-side float rounding)
TOTAL_TOLERANCE_CENTS = 1


def compute_total_cents(selling_price_cents: int, vat: int, quantity: int, discount_bps: int) -> int:
    """
    sellingPrice * quantity * (1 - discount/100) * (1 + vat/100), in cents,
    rounded half-up to the cent.
    """
    gross = Decimal(selling_price_cents) * quantity
    discounted = gross * (Decimal(10000 - discount_bps) / Decimal(10000))
    with_vat = discounted * (Decimal(100 + vat) / Decimal(100))
    return int(with_vat.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_sale_date(value) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if not isinstance(value, str):
        raise ValidationError("sale_date must be an ISO-8601 string")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError("sale_date must be an ISO-8601 string", details={"sale_date": value})
    return parsed or utcnow()


def _resolve_total(computed_cents: int, requested_cents: int | None) -> int:
    if requested_cents is None:
        return computed_cents

    policy = current_app.config.get("SALE_TOTAL_POLICY", POLICY_VERIFY)
    if policy == POLICY_TRUST:
        return requested_cents

    if abs(requested_cents - computed_cents) > TOTAL_TOLERANCE_CENTS:
        raise ValidationError(
            "total_price does not match the product price",
            details={
                "total_price": cents_to_money(requested_cents),
                "expected_total_price": cents_to_money(computed_cents),
            },
        )
    return computed_cents


def _append_sale(session, **fields) -> Sale:
    sale = Sale(**fields)
    session.add(sale)
    session.flush()  # ensure sale.id exists before commit
    return sale


def _remove_sale(session, sale: Sale) -> None:
    session.delete(sale)
    session.flush()


def record_sale(
    product_id,
    quantity,
    *,
    payment_method,
    discount=0,
    total_price=None,
    sale_date=None,
    user_id: int | None = None,
) -> Sale:
    """
    Record one sale: check stock, decrement it, append the ledger row.

    Raises:
        ValidationError: malformed input (nothing touched)
        ProductNotFound: no such product (nothing written)
        InsufficientStock: quantity exceeds stock_level (nothing written)
        StorageError: persistence failure (rolled back)

    Not idempotent: every successful call is a distinct sale.
    """
    product_id = coerce_int("product_id", product_id)
    qty, method = enforce_rules_sale(
        quantity=quantity,
        payment_method=payment_method,
        payment_methods=tuple(current_app.config.get("PAYMENT_METHODS", ())),
    )
    discount_bps = percent_to_bps("discount", discount)
    requested_cents = None
    if total_price is not None:
        # MAX_PRICE_CENTS bounds unit prices only; sale totals are uncapped
        requested_cents = money_to_cents("total_price", total_price, max_cents=None)
    when = _parse_sale_date(sale_date)

    try:
        with unit_of_work() as session:
            product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
            if product is None:
                raise ProductNotFound(product_id)

            if product.stock_level < qty:
                raise InsufficientStock(product_id, requested=qty, on_hand=product.stock_level)

            computed_cents = compute_total_cents(product.selling_price_cents, product.vat, qty, discount_bps)
            total_cents = _resolve_total(computed_cents, requested_cents)

            product.stock_level -= qty
            sale = _append_sale(
                session,
                product_id=product.id,
                quantity=qty,
                discount_bps=discount_bps,
                total_price_cents=total_cents,
                payment_method=method,
                sale_date=when,
                created_by_user_id=user_id,
            )
    except (ProductNotFound, InsufficientStock, ValidationError) as exc:
        current_app.logger.warning("Sale rejected for product %s: %s", product_id, exc)
        raise

    current_app.logger.info(
        "Recorded sale %s: product=%s quantity=%s total_cents=%s",
        sale.id, product_id, qty, sale.total_price_cents,
    )
    return sale


def revoke_sale(sale_id, *, user_id: int | None = None) -> dict:
    """
    Delete a sale and restore its quantity to the product's current stock.

    Returns the revoked sale's payload. A second revoke of the same id raises
    SaleNotFound and restores nothing.
    """
    sale_id = coerce_int("sale_id", sale_id)

    with unit_of_work() as session:
        sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFound(sale_id)

        product = lock_for_update(session.query(Product).filter_by(id=sale.product_id)).first()
        if product is None:
            raise ProductNotFound(sale.product_id)

        revoked = sale.to_dict()
        product.stock_level += sale.quantity
        _remove_sale(session, sale)

    current_app.logger.info(
        "Revoked sale %s by user %s: restored %s to product %s",
        sale_id, user_id, revoked["quantity"], revoked["productId"],
    )
    return revoked


def get_sale(sale_id) -> Sale:
    sale = db.session.get(Sale, coerce_int("sale_id", sale_id))
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale


def quote_sale(product_id, quantity, discount=0) -> dict:
    """Price a prospective sale without touching stock or the ledger."""
    product_id = coerce_int("product_id", product_id)
    qty = coerce_int("quantity", quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0")
    discount_bps = percent_to_bps("discount", discount)

    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    total_cents = compute_total_cents(product.selling_price_cents, product.vat, qty, discount_bps)
    return {
        "productId": product.id,
        "quantity": qty,
        "discount": float(discount_bps) / 100,
        "vat": product.vat,
        "unitPrice": cents_to_money(product.selling_price_cents),
        "totalPrice": cents_to_money(total_cents),
        "inStock": product.stock_level >= qty,
    }
