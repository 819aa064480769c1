from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z


class ShopOwner(db.Model):
    """
    Shop profile printed on receipts.

    The business runs exactly one shop; shop_service refuses a second row.
    """
    __tablename__ = "shop_owners"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shop_name = db.Column(db.String(255), nullable=False)
    # Revenue authority tax PIN
    tax_pin = db.Column(db.String(64), nullable=False, unique=True)
    postal_address = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_name": self.shop_name,
            "tax_pin": self.tax_pin,
            "postal_address": self.postal_address,
            "email": self.email,
            "phone": self.phone,
            "updated_at": to_utc_z(self.updated_at),
        }
