"""
Plain snapshots of catalog and sale rows.

The stock ledger hands these out instead of live ORM objects so the sale
workflow and the dashboard never hold a database session, and so an in-memory
ledger can produce exactly the same shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .time_utils import to_utc_z


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class ProductRecord:
    id: int
    product_code: str
    name: str
    quantity: int
    price: Decimal | None = None
    purchase_price: Decimal | None = None
    supplier_id: str | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productCode": self.product_code,
            "name": self.name,
            "quantity": self.quantity,
            "price": _money(self.price),
            "purchasePrice": _money(self.purchase_price),
            "supplierId": self.supplier_id,
            "createdAt": to_utc_z(self.created_at),
        }


@dataclass(frozen=True)
class SaleRecord:
    id: int
    product_id: int
    quantity_sold: int
    sale_date: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "quantitySold": self.quantity_sold,
            "saleDate": to_utc_z(self.sale_date),
        }


@dataclass(frozen=True)
class SaleLineRequest:
    """One basket line as submitted by the client; never persisted directly."""
    product_id: int
    quantity_sold: int
