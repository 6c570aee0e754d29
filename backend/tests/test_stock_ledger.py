"""
SQL stock ledger tests.

Verifies:
- Compare-and-swap quantity writes land only on the expected quantity
- Every write bumps version_id
- Negative quantities never reach the database
- Sales list oldest first and honour the since filter
"""

from datetime import datetime, timedelta

import pytest

from pharmapos.extensions import db
from pharmapos.models import Product
from pharmapos.services.stock_ledger import LedgerError, SqlStockLedger, StaleStockError

from conftest import sale_rows


@pytest.fixture
def sql_ledger(app):
    return SqlStockLedger()


def _reload(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id)


class TestSetQuantity:
    def test_compare_and_swap_succeeds_on_expected(self, sql_ledger, products):
        a = products["A"]
        version = a.version_id

        sql_ledger.set_quantity(a.id, 6, expected_quantity=10)

        fresh = _reload(a.id)
        assert fresh.quantity == 6
        assert fresh.version_id == version + 1

    def test_compare_and_swap_rejects_stale_expectation(self, sql_ledger, products):
        a = products["A"]

        with pytest.raises(StaleStockError) as exc_info:
            sql_ledger.set_quantity(a.id, 6, expected_quantity=9)

        assert exc_info.value.product_id == a.id
        assert _reload(a.id).quantity == 10

    def test_unconditional_write(self, sql_ledger, products):
        sql_ledger.set_quantity(products["B"].id, 40)
        assert _reload(products["B"].id).quantity == 40

    def test_missing_product_is_stale(self, sql_ledger, db_session):
        with pytest.raises(StaleStockError):
            sql_ledger.set_quantity(12345, 1, expected_quantity=2)

    def test_negative_quantity_refused(self, sql_ledger, products):
        with pytest.raises(LedgerError):
            sql_ledger.set_quantity(products["C"].id, -1, expected_quantity=1)
        assert _reload(products["C"].id).quantity == 1


class TestReads:
    def test_get_product_returns_record(self, sql_ledger, products):
        record = sql_ledger.get_product(products["A"].id)
        assert record.name == "Aspirin"
        assert record.product_code == "PR001"
        assert record.quantity == 10

    def test_get_product_sees_fresh_quantity(self, sql_ledger, products):
        a = products["A"]
        assert sql_ledger.get_product(a.id).quantity == 10
        sql_ledger.set_quantity(a.id, 3, expected_quantity=10)
        assert sql_ledger.get_product(a.id).quantity == 3

    def test_get_missing_product(self, sql_ledger, db_session):
        assert sql_ledger.get_product(999) is None

    def test_list_products_by_id(self, sql_ledger, products):
        assert [p.name for p in sql_ledger.list_products()] == ["Aspirin", "Bandages", "Cough syrup"]


class TestSales:
    def test_insert_and_list(self, sql_ledger, products, db_session):
        now = datetime(2026, 3, 1, 9, 0, 0)
        a, b = products["A"], products["B"]

        sql_ledger.insert_sale(b.id, 1, now)
        sql_ledger.insert_sale(a.id, 2, now - timedelta(days=3))

        listed = sql_ledger.list_sales()
        assert [(s.product_id, s.quantity_sold) for s in listed] == [(a.id, 2), (b.id, 1)]

        recent = sql_ledger.list_sales(since=now - timedelta(days=1))
        assert [s.product_id for s in recent] == [b.id]
        assert len(sale_rows(db_session)) == 2

