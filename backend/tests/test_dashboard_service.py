"""
Dashboard aggregation tests.

Verifies:
- Top product is the highest summed quantity, ties to the first seen
- The sales window excludes older sales
- Low stock is quantity <= threshold, lowest quantity first
- No sales means no top product
"""

from datetime import datetime, timedelta

from pharmapos.records import SaleRecord
from pharmapos.services.dashboard_service import compute_dashboard, load_dashboard, window_start

from conftest import product_record

NOW = datetime(2026, 3, 10, 12, 0, 0)


def sale(sale_id, product_id, quantity, days_ago=0):
    return SaleRecord(
        id=sale_id,
        product_id=product_id,
        quantity_sold=quantity,
        sale_date=NOW - timedelta(days=days_ago),
    )


PRODUCTS = [
    product_record(1, "Aspirin", 10),
    product_record(2, "Bandages", 2),
    product_record(3, "Cough syrup", 0),
    product_record(4, "Dental floss", 5),
]


class TestTopProduct:
    def test_highest_total_wins(self):
        sales = [sale(1, 1, 2), sale(2, 2, 3), sale(3, 1, 2)]
        result = compute_dashboard(sales, PRODUCTS, now=NOW)
        assert result.top_product.id == 1

    def test_tie_goes_to_first_seen(self):
        sales = [sale(1, 2, 3), sale(2, 1, 3)]
        result = compute_dashboard(sales, PRODUCTS, now=NOW)
        assert result.top_product.id == 2

    def test_no_sales(self):
        result = compute_dashboard([], PRODUCTS, now=NOW)
        assert result.top_product is None
        assert result.to_dict()["mostSellingProduct"] is None

    def test_sales_of_missing_products_ignored(self):
        sales = [sale(1, 99, 50), sale(2, 4, 1)]
        result = compute_dashboard(sales, PRODUCTS, now=NOW)
        assert result.top_product.id == 4

    def test_window_excludes_old_sales(self):
        sales = [sale(1, 1, 100, days_ago=40), sale(2, 2, 1, days_ago=1)]
        assert compute_dashboard(sales, PRODUCTS, now=NOW).top_product.id == 1
        assert compute_dashboard(sales, PRODUCTS, window_days=30, now=NOW).top_product.id == 2


class TestLowStock:
    def test_default_threshold_sorted_by_quantity(self):
        result = compute_dashboard([], PRODUCTS, now=NOW)
        assert [p.id for p in result.low_stock] == [3, 2, 4]

    def test_custom_threshold(self):
        result = compute_dashboard([], PRODUCTS, low_stock_threshold=1, now=NOW)
        assert [p.id for p in result.low_stock] == [3]

    def test_body(self):
        body = compute_dashboard([], PRODUCTS, low_stock_threshold=0, now=NOW).to_dict()
        assert body["lowStockProducts"] == [PRODUCTS[2].to_dict()]


def test_window_start():
    assert window_start(None, NOW) is None
    assert window_start(7, NOW) == NOW - timedelta(days=7)


def test_load_dashboard_reads_through_ledger(ledger):
    ledger.insert_sale(2, 1, NOW)
    ledger.insert_sale(1, 1, NOW - timedelta(days=10))

    result = load_dashboard(ledger, window_days=5, now=NOW)

    assert result.top_product.name == "Bandages"
    assert [p.id for p in result.low_stock] == [3, 2]
