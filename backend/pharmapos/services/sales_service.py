"""
Sales Service - basket checkout against live stock

A basket is validated as a whole, then applied line by line. Each line is a
read, a compare-and-swap quantity write and a sale insert; each line commits on
its own. There is no basket-wide rollback: a failure after some lines went
through is reported as PartialApplication with the number of committed lines.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from ..records import SaleLineRequest, SaleRecord
from ..results import (
    BackendUnavailable,
    InsufficientStock,
    PartialApplication,
    ProductNotFound,
    SaleFailure,
    SaleOutcome,
    SaleResult,
)
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .sale_validator import validate_basket
from .stock_ledger import LedgerError, StaleStockError, StockLedger

logger = logging.getLogger(__name__)

SALE_SUCCESS_MESSAGE = "Sale completed successfully"


class _LineRejected(Exception):
    """Internal: a line turned out unsellable when re-read during processing."""
    def __init__(self, failure: SaleFailure):
        super().__init__(failure.message)
        self.failure = failure


def _restore_quantity(ledger: StockLedger, product_id: int, quantity: int, written: int) -> None:
    try:
        ledger.set_quantity(product_id, quantity, expected_quantity=written)
        logger.warning("Restored quantity of product %s to %s after failed sale insert", product_id, quantity)
    except LedgerError:
        logger.exception(
            "Could not restore quantity of product %s to %s; stock is short by %s without a sale row",
            product_id, quantity, quantity - written,
        )


def _apply_line(ledger: StockLedger, line: SaleLineRequest, sale_date: datetime) -> SaleRecord:
    """Re-read, decrement (compare-and-swap) and record one line. One attempt."""
    product = ledger.get_product(line.product_id)
    if product is None:
        raise _LineRejected(ProductNotFound(line.product_id))
    if product.quantity < line.quantity_sold:
        raise _LineRejected(InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=product.quantity,
            requested=line.quantity_sold,
        ))

    new_quantity = product.quantity - line.quantity_sold
    ledger.set_quantity(product.id, new_quantity, expected_quantity=product.quantity)

    try:
        sale = ledger.insert_sale(product.id, line.quantity_sold, sale_date)
    except LedgerError:
        _restore_quantity(ledger, product.id, product.quantity, new_quantity)
        raise

    logger.info("Processed sale for product %s, quantity %s", product.id, line.quantity_sold)
    return sale


def process_sale(
    ledger: StockLedger,
    basket: Sequence[SaleLineRequest],
    *,
    now: datetime | None = None,
    attempts: int = 3,
) -> SaleOutcome:
    """
    Validate and apply a basket.

    Returns SaleResult on full success. Otherwise returns a SaleFailure:
    - ValidationFailure / ProductNotFound / InsufficientStock from validation,
      with nothing written;
    - the failing line's own failure when it is the first line to be written
      (still nothing written);
    - BackendUnavailable when the store fails before any line committed;
    - PartialApplication when a line fails after earlier lines committed.
    """
    sale_date = now or utcnow()
    logger.info("Processing sale with %d items", len(basket))

    try:
        failure = validate_basket(ledger, basket)
    except LedgerError as exc:
        logger.error("Database error validating sale: %s", exc)
        return BackendUnavailable(str(exc))
    if failure is not None:
        return failure

    committed: list[SaleRecord] = []
    for index, line in enumerate(basket):
        try:
            sale = run_with_retry(
                lambda line=line: _apply_line(ledger, line, sale_date),
                attempts=attempts,
                retry_on=(StaleStockError,),
            )
        except _LineRejected as exc:
            line_failure = exc.failure
        except StaleStockError as exc:
            logger.error("Gave up on product %s after %d concurrent updates", line.product_id, attempts)
            line_failure = BackendUnavailable(str(exc), product_id=line.product_id, line_index=index)
        except LedgerError as exc:
            logger.error("Database error processing sale line %d (product %s): %s", index, line.product_id, exc)
            line_failure = BackendUnavailable(str(exc), product_id=line.product_id, line_index=index)
        else:
            committed.append(sale)
            continue

        if not committed:
            return line_failure

        logger.error(
            "Sale partially applied: %d line(s) committed before line %d failed (%s)",
            len(committed), index, line_failure.message,
        )
        return PartialApplication(
            failed_line=index,
            product_id=line.product_id,
            committed_lines=len(committed),
            cause=line_failure,
            sales=tuple(committed),
        )

    logger.info("Sale completed successfully")
    return SaleResult(
        items_processed=len(committed),
        sales=tuple(committed),
        message=SALE_SUCCESS_MESSAGE,
    )
