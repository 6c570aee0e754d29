# backend/pharmapos/services/products_service.py
"""
Products Service

Catalog CRUD plus the read-only sale views (daily totals, full sale list).

AUTHORIZATION: every mutating call takes the caller's AuthContext and requires
an admin; reads only require an authenticated caller (enforced by the route).
"""
from __future__ import annotations

import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, Sale
from ..validation import ConflictError
from .auth_context import AuthContext

PRODUCT_MUTABLE_FIELDS = {"product_code", "name", "quantity", "price", "purchase_price", "supplier_id"}

PRODUCT_CODE_PREFIX = "PR"
_PRODUCT_CODE_RE = re.compile(rf"^{PRODUCT_CODE_PREFIX}(\d+)$")


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def format_product_code(number: int) -> str:
    return f"{PRODUCT_CODE_PREFIX}{number:03d}"


def next_product_code() -> str:
    """
    Next free "PRnnn" code: one past the highest numeric suffix in use.

    Codes that do not follow the PR pattern are ignored; an empty catalog
    starts at PR001.
    """
    codes = db.session.query(Product.product_code).filter(
        Product.product_code.like(f"{PRODUCT_CODE_PREFIX}%")
    ).all()

    highest = 0
    for (code,) in codes:
        match = _PRODUCT_CODE_RE.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return format_product_code(highest + 1)


def _ensure_code_free(code: str, product_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.product_code == code)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first() is not None:
        raise ConflictError(f"Product code {code} already exists")


def list_products() -> list[dict]:
    """All products, newest first."""
    products = db.session.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()
    return [p.to_dict() for p in products]


def get_product(product_id: int) -> dict | None:
    product = db.session.get(Product, product_id)
    return product.to_dict() if product else None


def create_product(auth: AuthContext, *, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    product_code is generated when omitted or blank.

    Raises:
        AuthorizationError: caller is not an admin
        ConflictError: product code already in use
    """
    auth.require_admin("create products")

    code = patch.get("product_code") or next_product_code()
    _ensure_code_free(code)

    product = Product(product_code=code)
    apply_product_patch(product, {k: v for k, v in patch.items() if k != "product_code"})

    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product code {code} already exists")

    return product.to_dict()


def update_product(auth: AuthContext, *, product_id: int, patch: dict) -> dict | None:
    """Apply a partial update. Returns None if the product does not exist."""
    auth.require_admin("update products")

    product = db.session.get(Product, product_id)
    if product is None:
        return None

    if patch.get("product_code"):
        _ensure_code_free(patch["product_code"], product_id=product_id)

    apply_product_patch(product, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product update violates a catalog constraint")
    except StaleDataError:
        db.session.rollback()
        raise ConflictError("Product was modified concurrently; reload and retry")

    return product.to_dict()


def delete_product(auth: AuthContext, *, product_id: int) -> bool:
    """
    Delete a product that has never been sold.

    Sale rows are permanent, so a product with sales cannot be removed.
    Returns False if the product does not exist.
    """
    auth.require_admin("delete products")

    product = db.session.get(Product, product_id)
    if product is None:
        return False

    has_sales = db.session.query(Sale.id).filter(Sale.product_id == product_id).first() is not None
    if has_sales:
        raise ConflictError("Product has recorded sales and cannot be deleted")

    db.session.delete(product)
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError("Product was modified concurrently; reload and retry")
    return True


def list_sales(auth: AuthContext) -> list[dict]:
    """Every sale row, newest first. Admin only."""
    auth.require_admin("view all sales")

    sales = db.session.query(Sale).order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
    return [s.to_dict() for s in sales]


def daily_sales() -> list[dict]:
    """Units sold and number of sale rows per calendar day (UTC), oldest day first."""
    day = func.date(Sale.sale_date)
    rows = db.session.query(
        day.label("day"),
        func.coalesce(func.sum(Sale.quantity_sold), 0).label("quantity_sold"),
        func.count(Sale.id).label("sales_count"),
    ).group_by(day).order_by(day).all()

    return [
        {
            "date": str(row.day),
            "quantitySold": int(row.quantity_sold or 0),
            "salesCount": int(row.sales_count or 0),
        }
        for row in rows
    ]
