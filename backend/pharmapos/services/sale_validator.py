# Overview: Read-only checks run over a whole basket before any stock is touched.

from __future__ import annotations

import logging
from typing import Sequence

from ..records import SaleLineRequest
from ..results import InsufficientStock, ProductNotFound, SaleFailure, ValidationFailure
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def check_basket_shape(basket: Sequence[SaleLineRequest]) -> ValidationFailure | None:
    if not basket:
        return ValidationFailure("Basket is empty")
    for index, line in enumerate(basket):
        if line.quantity_sold <= 0:
            return ValidationFailure(
                f"quantitySold must be > 0 (product {line.product_id})",
                line_index=index,
            )
    return None


def requested_totals(basket: Sequence[SaleLineRequest]) -> dict[int, int]:
    """Quantity requested per product, in first-seen basket order."""
    totals: dict[int, int] = {}
    for line in basket:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity_sold
    return totals


def validate_basket(ledger: StockLedger, basket: Sequence[SaleLineRequest]) -> SaleFailure | None:
    """
    Validate a basket against current stock.

    Returns None when every line can be served, otherwise the first failure:
    ValidationFailure, ProductNotFound or InsufficientStock.

    Lines for the same product are summed before comparing against stock, so
    [{A, 8}, {A, 5}] against A=10 is rejected here rather than half-applied.

    Not atomic with processing: stock can still move between this check and
    the writes. The processor re-checks every line before writing.

    Raises LedgerError if the store cannot be read.
    """
    shape_failure = check_basket_shape(basket)
    if shape_failure is not None:
        logger.warning("Basket rejected: %s", shape_failure.reason)
        return shape_failure

    for product_id, requested in requested_totals(basket).items():
        product = ledger.get_product(product_id)
        if product is None:
            logger.warning("Product %s not found during sale", product_id)
            return ProductNotFound(product_id)
        if product.quantity < requested:
            logger.warning(
                "Insufficient stock for product %s. Available: %s, Requested: %s",
                product_id, product.quantity, requested,
            )
            return InsufficientStock(
                product_id=product_id,
                product_name=product.name,
                available=product.quantity,
                requested=requested,
            )

    return None
