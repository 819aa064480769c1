"""
Reporting tests: period buckets, date ranges, snapshots and inventory views.
"""

from datetime import date

import pytest

from duka.errors import ValidationError
from duka.services import catalog_service, inventory_coordinator, reporting_service


@pytest.fixture
def ten_bob_product(category):
    """Selling price 10.00 so quantities read directly as totals."""
    return catalog_service.create_product({
        "name": "Sweets",
        "category_id": category.id,
        "purchase_price": "5.00",
        "selling_price": "10.00",
        "vat": 0,
        "stock_level": 100,
        "supplier_name": "Sugar Ltd",
    })


@pytest.fixture
def ledger(ten_bob_product):
    """30 + 20 on 2024-01-01, 50 on 2024-02-01."""
    pid = ten_bob_product.id
    inventory_coordinator.record_sale(pid, 3, payment_method="Cash", sale_date="2024-01-01T09:00:00")
    inventory_coordinator.record_sale(pid, 2, payment_method="Mpesa", sale_date="2024-01-01T17:45:00")
    inventory_coordinator.record_sale(pid, 5, payment_method="Card", sale_date="2024-02-01T12:00:00")
    return ten_bob_product


class TestPeriodBuckets:

    def test_daily_buckets(self, ledger):
        assert reporting_service.daily_totals() == [
            {"sale_date": "2024-01-01", "totalSales": 50.0},
            {"sale_date": "2024-02-01", "totalSales": 50.0},
        ]

    def test_monthly_buckets(self, ledger):
        assert reporting_service.monthly_totals() == [
            {"sale_date": "2024-01", "totalSales": 50.0},
            {"sale_date": "2024-02", "totalSales": 50.0},
        ]

    def test_yearly_buckets(self, ledger):
        assert reporting_service.yearly_totals() == [
            {"sale_date": "2024", "totalSales": 100.0},
        ]

    def test_buckets_are_sparse(self, ledger):
        days = [row["sale_date"] for row in reporting_service.daily_totals()]
        assert "2024-01-15" not in days

    def test_empty_ledger(self):
        assert reporting_service.daily_totals() == []

    def test_revoked_sale_leaves_buckets(self, ten_bob_product):
        sale = inventory_coordinator.record_sale(
            ten_bob_product.id, 4, payment_method="Cash", sale_date="2024-03-03"
        )
        inventory_coordinator.revoke_sale(sale.id)

        assert reporting_service.monthly_totals() == []


class TestRangeReport:

    def test_single_day_is_inclusive(self, ledger):
        sales = reporting_service.range_report("2024-01-01", "2024-01-01")

        assert [s["quantity"] for s in sales] == [3, 2]
        assert all(s["productName"] == "Sweets" for s in sales)

    def test_ascending_by_date(self, ledger):
        sales = reporting_service.range_report("2023-12-31", "2024-02-01")
        assert [s["saleDate"] for s in sales] == [
            "2024-01-01T09:00:00Z",
            "2024-01-01T17:45:00Z",
            "2024-02-01T12:00:00Z",
        ]

    def test_start_after_end_rejected(self, ledger):
        with pytest.raises(ValidationError):
            reporting_service.range_report("2024-02-01", "2024-01-01")

    @pytest.mark.parametrize("start,end", [("", "2024-01-01"), ("not-a-date", "2024-01-01")])
    def test_bad_bounds_rejected(self, start, end):
        with pytest.raises(ValidationError):
            reporting_service.range_report(start, end)


class TestProfitSnapshot:

    def test_snapshot_for_given_day(self, ledger):
        assert reporting_service.profit_snapshot(today=date(2024, 1, 1)) == {
            "daily": 50.0,
            "monthly": 50.0,
            "yearly": 100.0,
        }

    def test_december_rolls_over_year(self, ledger):
        assert reporting_service.profit_snapshot(today=date(2024, 12, 31)) == {
            "daily": 0.0,
            "monthly": 0.0,
            "yearly": 100.0,
        }


class TestHistoryAndInventory:

    def test_history_newest_first(self, ledger):
        history = reporting_service.sales_history()
        assert [s["saleDate"][:10] for s in history] == ["2024-02-01", "2024-01-01", "2024-01-01"]

    def test_inventory_data(self, ledger):
        assert reporting_service.inventory_data() == [
            {"id": ledger.id, "name": "Sweets", "stock_level": 90},
        ]

    def test_inventory_status_flags_low_stock(self, product, ledger):
        catalog_service.update_product(product.id, {"stock_level": 3})

        status = reporting_service.inventory_status(threshold=5)

        assert status["total_stock"] == 93
        assert [row["id"] for row in status["low_stock"]] == [product.id]

    def test_categories_report_counts_products(self, ledger):
        catalog_service.create_category("Empty Shelf")

        report = {row["name"]: row["product_count"] for row in reporting_service.categories_report()}
        assert report == {"Beverages": 1, "Empty Shelf": 0}

    def test_users_report(self, admin_user, cashier_user):
        rows = reporting_service.users_report()
        assert [(r["username"], r["role"]) for r in rows] == [("admin", "admin"), ("cashier", "cashier")]
        assert all("password_hash" not in r for r in rows)
