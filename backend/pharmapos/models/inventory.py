from __future__ import annotations

from ..extensions import db
from ..records import ProductRecord, SaleRecord
from ..time_utils import utcnow


class Product(db.Model):
    """
    Catalog entry with its current stock count.

    Stock lives directly on the row (quantity) and is only decremented by the
    sale workflow or edited by an admin. The CHECK constraint is the last line
    of defence for the non-negative stock invariant.

    PRODUCT CODE: human-assigned or generated ("PR001", "PR002", ...), unique
    across the catalog.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_quantity", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Sale price and cost basis
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    supplier_id = db.Column(db.String(64), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} name={self.name!r} qty={self.quantity}>"

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            product_code=self.product_code,
            name=self.name,
            quantity=self.quantity,
            price=self.price,
            purchase_price=self.purchase_price,
            supplier_id=self.supplier_id,
            created_at=self.created_at,
        )

    def to_dict(self) -> dict:
        return self.to_record().to_dict()


class Sale(db.Model):
    """Append-only fact: quantity_sold units of a product left stock at sale_date."""
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity_sold > 0", name="ck_sales_quantity_positive"),
        db.Index("ix_sales_product_date", "product_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity_sold = db.Column(db.Integer, nullable=False)
    sale_date = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} qty={self.quantity_sold}>"

    def to_record(self) -> SaleRecord:
        return SaleRecord(
            id=self.id,
            product_id=self.product_id,
            quantity_sold=self.quantity_sold,
            sale_date=self.sale_date,
        )

    def to_dict(self) -> dict:
        return self.to_record().to_dict()
