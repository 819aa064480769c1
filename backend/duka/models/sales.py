from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z
from duka.validation import cents_to_money, bps_to_percent


class Sale(db.Model):
    """
    Sale ledger row.

    Rows are created only by inventory_coordinator.record_sale and deleted
    only by inventory_coordinator.revoke_sale; they are never edited.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        db.CheckConstraint("discount_bps >= 0 AND discount_bps <= 10000", name="ck_sales_discount_range"),
        db.CheckConstraint("total_price_cents >= 0", name="ck_sales_total_nonnegative"),
        db.Index("ix_sales_product_date", "product_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Discount percentage in basis points (12.5% == 1250)
    discount_bps = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # User attribution (nullable for CLI/bootstrap sales)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else "Unknown Product",
            "quantity": self.quantity,
            "discount": bps_to_percent(self.discount_bps),
            "totalPrice": cents_to_money(self.total_price_cents),
            "paymentMethod": self.payment_method,
            "saleDate": to_utc_z(self.sale_date),
        }
