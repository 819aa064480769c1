# Overview: Service-layer operations for the shop profile (one row per installation).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import ShopOwner
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import EMAIL_RE
from .unit_of_work import unit_of_work

SHOP_OWNER_POLICY = ModelValidationPolicy(
    writable_fields={"shop_name", "tax_pin", "postal_address", "email", "phone"},
    required_on_create={"shop_name", "tax_pin", "postal_address", "email"},
)


def _clean(payload: dict | None, *, partial: bool) -> dict:
    patch = validate_payload(model=ShopOwner, payload=payload, policy=SHOP_OWNER_POLICY, partial=partial)
    if "email" in patch:
        patch["email"] = patch["email"].lower()
        if not EMAIL_RE.match(patch["email"]):
            raise ValidationError("email is not valid")
    if patch.get("phone") == "":
        patch["phone"] = None
    return patch


def get_shop_owner() -> ShopOwner:
    owner = db.session.query(ShopOwner).order_by(ShopOwner.id.asc()).first()
    if owner is None:
        raise NotFoundError("No shop owner found.")
    return owner


def create_shop_owner(payload: dict) -> ShopOwner:
    """Register the shop profile. A second profile is a conflict."""
    patch = _clean(payload, partial=False)

    with unit_of_work() as session:
        if session.query(ShopOwner.id).first() is not None:
            raise ConflictError("Shop owner already registered; update it instead")

        owner = ShopOwner(**patch)
        session.add(owner)
        session.flush()

    current_app.logger.info("Registered shop %s", owner.shop_name)
    return owner


def update_shop_owner(payload: dict) -> ShopOwner:
    patch = _clean(payload, partial=True)
    if not patch:
        raise ValidationError("No fields to update")

    with unit_of_work():
        owner = get_shop_owner()
        for k, v in patch.items():
            setattr(owner, k, v)

    current_app.logger.info("Updated shop profile fields: %s", ", ".join(sorted(patch.keys())))
    return owner
