# Overview: Read-side dashboard aggregation (top-selling product, low-stock list).

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from ..records import ProductRecord, SaleRecord
from ..results import DashboardResult
from ..time_utils import utcnow
from .stock_ledger import StockLedger

DEFAULT_LOW_STOCK_THRESHOLD = 5


def window_start(window_days: int | None, now: datetime | None = None) -> datetime | None:
    if window_days is None:
        return None
    return (now or utcnow()) - timedelta(days=window_days)


def compute_dashboard(
    sales: Iterable[SaleRecord],
    products: Iterable[ProductRecord],
    *,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    window_days: int | None = None,
    now: datetime | None = None,
) -> DashboardResult:
    """
    Pure aggregation over sale and product snapshots.

    Top product: highest summed quantity_sold among sales inside the window
    (all sales when window_days is None). Ties go to the product seen first in
    the sales input. Sales of products missing from the snapshot are ignored.

    Low stock: products with quantity <= low_stock_threshold, lowest first.
    """
    catalog = {p.id: p for p in products}
    since = window_start(window_days, now)

    totals: dict[int, int] = {}
    for sale in sales:
        if since is not None and sale.sale_date < since:
            continue
        if sale.product_id not in catalog:
            continue
        totals[sale.product_id] = totals.get(sale.product_id, 0) + sale.quantity_sold

    top_product = None
    if totals:
        # max() keeps the first maximal key; dict order is first-seen order
        top_id = max(totals, key=totals.__getitem__)
        top_product = catalog[top_id]

    low_stock = sorted(
        (p for p in catalog.values() if p.quantity <= low_stock_threshold),
        key=lambda p: (p.quantity, p.id),
    )

    return DashboardResult(top_product=top_product, low_stock=low_stock)


def load_dashboard(
    ledger: StockLedger,
    *,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    window_days: int | None = None,
    now: datetime | None = None,
) -> DashboardResult:
    """Fetch snapshots from the ledger and aggregate them. Raises LedgerError."""
    now = now or utcnow()
    sales = ledger.list_sales(since=window_start(window_days, now))
    products = ledger.list_products()
    return compute_dashboard(
        sales,
        products,
        low_stock_threshold=low_stock_threshold,
        window_days=window_days,
        now=now,
    )
