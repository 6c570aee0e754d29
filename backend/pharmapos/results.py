"""
Named outcomes of the sale workflow and the dashboard.

Sale processing never raises for business outcomes; it returns either a
SaleResult or one of the SaleFailure variants below. Each variant knows its
HTTP status and its JSON body so the route layer stays a thin translation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .records import ProductRecord, SaleRecord


@dataclass(frozen=True)
class SaleResult:
    items_processed: int
    sales: tuple[SaleRecord, ...] = ()
    message: str = "Sale completed"

    ok = True
    status_code = 200

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "itemsProcessed": self.items_processed,
            "sales": [s.to_dict() for s in self.sales],
        }


class SaleFailure:
    """Base for every way a basket can fail."""
    ok = False
    status_code = 400

    @property
    def message(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


@dataclass(frozen=True)
class ValidationFailure(SaleFailure):
    """Malformed basket: empty, or a non-positive quantity."""
    reason: str
    line_index: int | None = None

    @property
    def message(self) -> str:
        return self.reason

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.line_index is not None:
            body["line"] = self.line_index
        return body


@dataclass(frozen=True)
class ProductNotFound(SaleFailure):
    product_id: int

    @property
    def message(self) -> str:
        return f"Product ID {self.product_id} not found"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["productId"] = self.product_id
        return body


@dataclass(frozen=True)
class InsufficientStock(SaleFailure):
    product_id: int
    product_name: str
    available: int
    requested: int

    @property
    def message(self) -> str:
        return f"Insufficient stock for product '{self.product_name}'"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({
            "productId": self.product_id,
            "available": self.available,
            "requested": self.requested,
        })
        return body


@dataclass(frozen=True)
class BackendUnavailable(SaleFailure):
    """The data store call failed before anything was committed."""
    detail: str
    product_id: int | None = None
    line_index: int | None = None

    status_code = 503

    @property
    def message(self) -> str:
        return "Database error during sale"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["detail"] = self.detail
        if self.product_id is not None:
            body["productId"] = self.product_id
        if self.line_index is not None:
            body["line"] = self.line_index
        return body


@dataclass(frozen=True)
class PartialApplication(SaleFailure):
    """
    A line failed after earlier lines were committed.

    committed_lines lines (indexes 0..committed_lines-1) are durable; the line
    at failed_line and everything after it were not applied.
    """
    failed_line: int
    product_id: int
    committed_lines: int
    cause: SaleFailure
    sales: tuple[SaleRecord, ...] = ()

    status_code = 409

    @property
    def message(self) -> str:
        return (
            f"Sale partially applied: {self.committed_lines} line(s) committed, "
            f"line {self.failed_line} failed: {self.cause.message}"
        )

    def to_dict(self) -> dict:
        body = super().to_dict()
        body.update({
            "failedLine": self.failed_line,
            "productId": self.product_id,
            "committedLines": self.committed_lines,
            "cause": self.cause.to_dict(),
            "sales": [s.to_dict() for s in self.sales],
        })
        return body


SaleOutcome = Union[SaleResult, SaleFailure]


@dataclass(frozen=True)
class DashboardResult:
    top_product: ProductRecord | None = None
    low_stock: list[ProductRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mostSellingProduct": self.top_product.to_dict() if self.top_product else None,
            "lowStockProducts": [p.to_dict() for p in self.low_stock],
        }
