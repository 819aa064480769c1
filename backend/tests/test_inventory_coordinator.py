"""
Inventory coordinator tests.

Verifies:
- A sale decrements stock and appends exactly one ledger row
- Rejected sales leave stock and the ledger untouched
- Revocation restores stock exactly once
- Stock is conserved across record/revoke sequences
- Total price policies (verify / trust)
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from duka.extensions import db
from duka.errors import (
    InsufficientStock,
    ProductNotFound,
    SaleNotFound,
    StorageError,
    ValidationError,
)
from duka.models import Product, Sale
from duka.services import catalog_service, inventory_coordinator, reporting_service
from duka.time_utils import utcnow


def _stock(product_id: int) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_level


def _ledger_quantity(product_id: int) -> int:
    return sum(s.quantity for s in db.session.query(Sale).filter_by(product_id=product_id))


# =============================================================================
# RECORD SALE
# =============================================================================


class TestRecordSale:

    def test_sale_decrements_stock_and_appends_row(self, product):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash")

        assert _stock(product.id) == 8
        rows = db.session.query(Sale).all()
        assert len(rows) == 1
        assert rows[0].id == sale.id
        assert rows[0].quantity == 2
        assert rows[0].total_price_cents == 20000
        assert rows[0].payment_method == "Cash"

    def test_sale_payload_shape(self, product):
        sale = inventory_coordinator.record_sale(
            product.id, 1, payment_method="Mpesa", sale_date="2024-01-01T10:30:00Z"
        )
        payload = sale.to_dict()

        assert set(payload) == {
            "id", "productId", "productName", "quantity", "discount",
            "totalPrice", "paymentMethod", "saleDate",
        }
        assert payload["productName"] == "Soda 500ml"
        assert payload["totalPrice"] == 100.0
        assert payload["saleDate"] == "2024-01-01T10:30:00Z"

    def test_payment_method_matched_case_insensitively(self, product):
        sale = inventory_coordinator.record_sale(product.id, 1, payment_method="mpesa")
        assert sale.payment_method == "Mpesa"

    def test_sale_date_defaults_to_now(self, product):
        before = utcnow().replace(microsecond=0)
        sale = inventory_coordinator.record_sale(product.id, 1, payment_method="Cash")
        assert sale.sale_date >= before

    def test_identical_calls_are_distinct_sales(self, product):
        first = inventory_coordinator.record_sale(product.id, 1, payment_method="Cash")
        second = inventory_coordinator.record_sale(product.id, 1, payment_method="Cash")

        assert first.id != second.id
        assert _stock(product.id) == 8

    def test_discount_and_vat_in_total(self, category):
        taxed = catalog_service.create_product({
            "name": "Bar Soap",
            "category_id": category.id,
            "purchase_price": "50.00",
            "selling_price": "100.00",
            "vat": 16,
            "stock_level": 3,
            "supplier_name": "Clean Co",
        })

        sale = inventory_coordinator.record_sale(taxed.id, 1, discount=10, payment_method="Card")

        # 100 * 0.9 * 1.16
        assert sale.total_price_cents == 10440
        assert sale.discount_bps == 1000

    def test_compute_total_rounds_half_up(self):
        # 0.05 * 1 * 1.10 = 0.055 -> 0.06
        assert inventory_coordinator.compute_total_cents(5, 10, 1, 0) == 6
        assert inventory_coordinator.compute_total_cents(10000, 0, 3, 10000) == 0


# =============================================================================
# REJECTED SALES LEAVE NO TRACE
# =============================================================================


class TestRejectedSale:

    def test_insufficient_stock(self, product):
        catalog_service.update_product(product.id, {"stock_level": 5})

        with pytest.raises(InsufficientStock) as exc_info:
            inventory_coordinator.record_sale(product.id, 6, payment_method="Cash")

        assert exc_info.value.details["requested_quantity"] == 6
        assert exc_info.value.details["on_hand"] == 5
        assert _stock(product.id) == 5
        assert db.session.query(Sale).count() == 0

    def test_selling_entire_stock_is_allowed(self, product):
        inventory_coordinator.record_sale(product.id, 10, payment_method="Cash")
        assert _stock(product.id) == 0

        with pytest.raises(InsufficientStock):
            inventory_coordinator.record_sale(product.id, 1, payment_method="Cash")

    def test_unknown_product(self, product):
        with pytest.raises(ProductNotFound):
            inventory_coordinator.record_sale(9999, 1, payment_method="Cash")

        assert db.session.query(Sale).count() == 0

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "1.5", "abc", None])
    def test_invalid_quantity(self, product, quantity):
        with pytest.raises(ValidationError):
            inventory_coordinator.record_sale(product.id, quantity, payment_method="Cash")

        assert _stock(product.id) == 10
        assert db.session.query(Sale).count() == 0

    @pytest.mark.parametrize("discount", [-1, 101, "lots"])
    def test_invalid_discount(self, product, discount):
        with pytest.raises(ValidationError):
            inventory_coordinator.record_sale(product.id, 1, discount=discount, payment_method="Cash")

        assert _stock(product.id) == 10

    @pytest.mark.parametrize("method", [None, "", "   ", "Bitcoin"])
    def test_invalid_payment_method(self, product, method):
        with pytest.raises(ValidationError):
            inventory_coordinator.record_sale(product.id, 1, payment_method=method)

        assert _stock(product.id) == 10

    def test_aware_sale_date_normalized_to_utc(self, product):
        nairobi = timezone(timedelta(hours=3))
        from_string = inventory_coordinator.record_sale(
            product.id, 1, payment_method="Cash", sale_date="2024-01-01T01:00:00+03:00"
        )
        from_datetime = inventory_coordinator.record_sale(
            product.id, 1, payment_method="Cash", sale_date=datetime(2024, 1, 1, 1, 0, tzinfo=nairobi)
        )

        assert from_string.sale_date == from_datetime.sale_date == datetime(2023, 12, 31, 22, 0)
        assert reporting_service.daily_totals() == [{"sale_date": "2023-12-31", "totalSales": 200.0}]

    def test_invalid_sale_date(self, product):
        with pytest.raises(ValidationError):
            inventory_coordinator.record_sale(product.id, 1, payment_method="Cash", sale_date="yesterday")

    def test_negative_total_price(self, product):
        with pytest.raises(ValidationError):
            inventory_coordinator.record_sale(product.id, 1, payment_method="Cash", total_price=-5)

    def test_storage_failure_rolls_back_decrement(self, product, monkeypatch):
        def failing_append(session, **fields):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(inventory_coordinator, "_append_sale", failing_append)

        with pytest.raises(StorageError):
            inventory_coordinator.record_sale(product.id, 3, payment_method="Cash")

        assert _stock(product.id) == 10
        assert db.session.query(Sale).count() == 0


# =============================================================================
# TOTAL PRICE POLICY
# =============================================================================


class TestTotalPricePolicy:

    def test_verify_accepts_matching_total(self, product):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash", total_price="200.00")
        assert sale.total_price_cents == 20000

    def test_verify_tolerates_one_cent(self, product):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash", total_price=199.99)
        assert sale.total_price_cents == 20000

    def test_verify_rejects_mismatched_total(self, product):
        with pytest.raises(ValidationError) as exc_info:
            inventory_coordinator.record_sale(product.id, 2, payment_method="Cash", total_price=150)

        assert exc_info.value.details["expected_total_price"] == 200.0
        assert _stock(product.id) == 10
        assert db.session.query(Sale).count() == 0

    def test_trust_stores_caller_total(self, app, product, monkeypatch):
        monkeypatch.setitem(app.config, "SALE_TOTAL_POLICY", "trust")

        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash", total_price=150)

        assert sale.total_price_cents == 15000
        assert _stock(product.id) == 8

    def test_large_supplied_total_matches_computed(self, category):
        bulk = catalog_service.create_product({
            "name": "Generator Set",
            "category_id": category.id,
            "purchase_price": "80000.00",
            "selling_price": "100000.00",
            "vat": 0,
            "stock_level": 500,
            "supplier_name": "Power Ltd",
        })

        supplied = inventory_coordinator.record_sale(
            bulk.id, 200, payment_method="Cash", total_price="20000000.00"
        )
        computed = inventory_coordinator.record_sale(bulk.id, 200, payment_method="Cash")

        assert supplied.total_price_cents == 2_000_000_000
        assert computed.total_price_cents == supplied.total_price_cents
        assert _stock(bulk.id) == 100


# =============================================================================
# REVOKE SALE
# =============================================================================


class TestRevokeSale:

    def test_revoke_restores_stock_once(self, product):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash")
        sale_id = sale.id

        revoked = inventory_coordinator.revoke_sale(sale_id)

        assert revoked["id"] == sale_id
        assert revoked["quantity"] == 2
        assert _stock(product.id) == 10
        assert db.session.query(Sale).count() == 0

        with pytest.raises(SaleNotFound):
            inventory_coordinator.revoke_sale(sale_id)

        assert _stock(product.id) == 10

    def test_revoke_adds_to_current_stock(self, product):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash")
        catalog_service.restock_product(product.id, 5)

        inventory_coordinator.revoke_sale(sale.id)

        assert _stock(product.id) == 15

    def test_storage_failure_rolls_back_restore(self, product, monkeypatch):
        sale = inventory_coordinator.record_sale(product.id, 2, payment_method="Cash")
        sale_id = sale.id

        def failing_remove(session, sale):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(inventory_coordinator, "_remove_sale", failing_remove)

        with pytest.raises(StorageError):
            inventory_coordinator.revoke_sale(sale_id)

        assert _stock(product.id) == 8
        assert db.session.get(Sale, sale_id).quantity == 2

    def test_revoke_unknown_sale(self, product):
        with pytest.raises(SaleNotFound):
            inventory_coordinator.revoke_sale(424242)

        assert _stock(product.id) == 10

    def test_get_sale(self, product):
        sale = inventory_coordinator.record_sale(product.id, 1, payment_method="Cash")
        assert inventory_coordinator.get_sale(sale.id).quantity == 1

        with pytest.raises(SaleNotFound):
            inventory_coordinator.get_sale(9999)


# =============================================================================
# CONSERVATION
# =============================================================================


class TestStockConservation:

    def test_stock_plus_ledger_is_constant(self, product):
        initial = _stock(product.id)
        live = []

        for qty in (1, 3, 2):
            live.append(inventory_coordinator.record_sale(product.id, qty, payment_method="Cash").id)
            assert _stock(product.id) + _ledger_quantity(product.id) == initial

        inventory_coordinator.revoke_sale(live.pop(1))
        assert _stock(product.id) + _ledger_quantity(product.id) == initial

        with pytest.raises(InsufficientStock):
            inventory_coordinator.record_sale(product.id, 99, payment_method="Cash")
        assert _stock(product.id) + _ledger_quantity(product.id) == initial

        for sale_id in live:
            inventory_coordinator.revoke_sale(sale_id)
        assert _stock(product.id) == initial


class TestQuoteSale:

    def test_quote_does_not_touch_stock(self, product):
        quote = inventory_coordinator.quote_sale(product.id, 3, 10)

        assert quote["totalPrice"] == 270.0
        assert quote["inStock"] is True
        assert _stock(product.id) == 10
        assert db.session.query(Sale).count() == 0

    def test_quote_flags_short_stock(self, product):
        assert inventory_coordinator.quote_sale(product.id, 11)["inStock"] is False
