# Overview: Data-access shim the sale workflow and dashboard read and write through.

"""
Stock Ledger

The sale validator, the sale processor and the dashboard never touch the ORM
directly; they go through a StockLedger. SqlStockLedger talks to the real
database via Flask-SQLAlchemy, InMemoryStockLedger keeps plain dicts and is
what the service tests run against.

WRITE SEMANTICS:
- Every write commits on its own. A basket is applied line by line, so each
  line is durable as soon as its writes return.
- set_quantity(..., expected_quantity=n) is a compare-and-swap: the write only
  lands if the stored quantity is still n, otherwise StaleStockError.
- Negative quantities are refused before reaching the store.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Sale
from ..records import ProductRecord, SaleRecord
from ..time_utils import utcnow


class LedgerError(Exception):
    """Raised when the backing store rejects or fails a call."""


class StaleStockError(LedgerError):
    """Raised when a compare-and-swap quantity write loses to a concurrent writer."""
    def __init__(self, product_id: int, expected_quantity: int | None):
        super().__init__(f"Quantity of product {product_id} changed concurrently (expected {expected_quantity})")
        self.product_id = product_id
        self.expected_quantity = expected_quantity


def _check_quantity(new_quantity: int) -> None:
    if new_quantity < 0:
        raise LedgerError(f"Quantity cannot go negative ({new_quantity})")


class StockLedger:
    """Interface shared by every ledger backend."""

    def get_product(self, product_id: int) -> ProductRecord | None:
        raise NotImplementedError

    def set_quantity(self, product_id: int, new_quantity: int, *, expected_quantity: int | None = None) -> None:
        raise NotImplementedError

    def insert_sale(self, product_id: int, quantity_sold: int, sale_date: datetime | None = None) -> SaleRecord:
        raise NotImplementedError

    def list_sales(self, since: datetime | None = None) -> list[SaleRecord]:
        """Sales oldest first (sale_date, then id), optionally from since (inclusive)."""
        raise NotImplementedError

    def list_products(self) -> list[ProductRecord]:
        raise NotImplementedError


class SqlStockLedger(StockLedger):
    """Ledger over the application database (Flask-SQLAlchemy session)."""

    def get_product(self, product_id: int) -> ProductRecord | None:
        try:
            product = db.session.get(Product, product_id, populate_existing=True)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(str(exc)) from exc
        return product.to_record() if product else None

    def set_quantity(self, product_id: int, new_quantity: int, *, expected_quantity: int | None = None) -> None:
        _check_quantity(new_quantity)

        stmt = update(Product).where(Product.id == product_id)
        if expected_quantity is not None:
            stmt = stmt.where(Product.quantity == expected_quantity)
        # Keep version_id moving so stale ORM edits of this row are detected too
        stmt = stmt.values(
            quantity=new_quantity,
            version_id=Product.version_id + 1,
        ).execution_options(synchronize_session=False)

        try:
            result = db.session.execute(stmt)
            if result.rowcount != 1:
                db.session.rollback()
                raise StaleStockError(product_id, expected_quantity)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(str(exc)) from exc

    def insert_sale(self, product_id: int, quantity_sold: int, sale_date: datetime | None = None) -> SaleRecord:
        sale = Sale(
            product_id=product_id,
            quantity_sold=quantity_sold,
            sale_date=sale_date or utcnow(),
        )
        try:
            db.session.add(sale)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(str(exc)) from exc
        return sale.to_record()

    def list_sales(self, since: datetime | None = None) -> list[SaleRecord]:
        query = db.session.query(Sale)
        if since is not None:
            query = query.filter(Sale.sale_date >= since)
        try:
            sales = query.order_by(Sale.sale_date.asc(), Sale.id.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(str(exc)) from exc
        return [s.to_record() for s in sales]

    def list_products(self) -> list[ProductRecord]:
        try:
            products = db.session.query(Product).order_by(Product.id.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(str(exc)) from exc
        return [p.to_record() for p in products]


class InMemoryStockLedger(StockLedger):
    """
    Dict-backed ledger with the same contract as SqlStockLedger.

    A single lock makes each call atomic, which is all the database gives the
    sale workflow too.
    """

    def __init__(self, products: list[ProductRecord] | None = None):
        self._lock = threading.Lock()
        self._products: dict[int, ProductRecord] = {}
        self._sales: list[SaleRecord] = []
        self._sale_ids = itertools.count(1)
        for product in products or []:
            self._products[product.id] = product

    def add_product(self, product: ProductRecord) -> ProductRecord:
        with self._lock:
            self._products[product.id] = product
        return product

    @property
    def sales(self) -> list[SaleRecord]:
        with self._lock:
            return list(self._sales)

    def get_product(self, product_id: int) -> ProductRecord | None:
        with self._lock:
            return self._products.get(product_id)

    def set_quantity(self, product_id: int, new_quantity: int, *, expected_quantity: int | None = None) -> None:
        _check_quantity(new_quantity)
        with self._lock:
            current = self._products.get(product_id)
            if current is None:
                raise StaleStockError(product_id, expected_quantity)
            if expected_quantity is not None and current.quantity != expected_quantity:
                raise StaleStockError(product_id, expected_quantity)
            self._products[product_id] = replace(current, quantity=new_quantity)

    def insert_sale(self, product_id: int, quantity_sold: int, sale_date: datetime | None = None) -> SaleRecord:
        with self._lock:
            if product_id not in self._products:
                raise LedgerError(f"Product {product_id} does not exist")
            sale = SaleRecord(
                id=next(self._sale_ids),
                product_id=product_id,
                quantity_sold=quantity_sold,
                sale_date=sale_date or utcnow(),
            )
            self._sales.append(sale)
            return sale

    def list_sales(self, since: datetime | None = None) -> list[SaleRecord]:
        with self._lock:
            sales = [s for s in self._sales if since is None or s.sale_date >= since]
        return sorted(sales, key=lambda s: (s.sale_date, s.id))

    def list_products(self) -> list[ProductRecord]:
        with self._lock:
            return sorted(self._products.values(), key=lambda p: p.id)


def get_stock_ledger() -> StockLedger:
    """The ledger the current app was configured with (SqlStockLedger by default)."""
    return current_app.extensions["stock_ledger"]
