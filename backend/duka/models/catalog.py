from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z
from duka.validation import cents_to_money


class Category(db.Model):
    """Product category. Names are unique; categories are never deleted."""
    __tablename__ = "product_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }


class Product(db.Model):
    """
    Product master data.

    stock_level only moves through catalog edits (create/update/restock) and
    the inventory coordinator (sell/revoke). The CHECK constraint backs up the
    coordinator's stock-sufficiency check at the storage level.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_level >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("purchase_price_cents >= 0", name="ck_products_purchase_price_nonnegative"),
        db.CheckConstraint("selling_price_cents >= 0", name="ck_products_selling_price_nonnegative"),
        db.CheckConstraint("vat >= 0", name="ck_products_vat_nonnegative"),
        db.Index("ix_products_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("product_categories.id"), nullable=False, index=True)

    # Authoritative storage in cents (API exposes 2-place decimals)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # VAT percentage (0, 8, 16 by default config)
    vat = db.Column(db.Integer, nullable=False, default=0)

    stock_level = db.Column(db.Integer, nullable=False, default=0)
    supplier_name = db.Column(db.String(255), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock_level={self.stock_level}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "purchase_price": cents_to_money(self.purchase_price_cents),
            "selling_price": cents_to_money(self.selling_price_cents),
            "vat": self.vat,
            "stock_level": self.stock_level,
            "supplier_name": self.supplier_name,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
