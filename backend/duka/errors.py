# Overview: Exception taxonomy shared by services and the API boundary.

"""
Service-layer errors.

Services raise these; routes translate them into ``{"success": False, ...}``
payloads using ``status_code`` and ``details``. Anything that is not a
``PosError`` is treated as an unexpected failure by the routes.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for expected, caller-visible failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"success": False, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(PosError, ValueError):
    """400-level input problem, raised before any write."""
    status_code = 400


class ConflictError(PosError, ValueError):
    """409-level business rule conflict (e.g., duplicate name)."""
    status_code = 409


class DuplicateName(ConflictError):
    pass


class NotFoundError(PosError):
    status_code = 404


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int | None = None):
        super().__init__("Product not found", details={"product_id": product_id} if product_id is not None else None)


class CategoryNotFound(NotFoundError):
    def __init__(self, category_id: int | None = None):
        super().__init__("Category not found", details={"category_id": category_id} if category_id is not None else None)


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: int | None = None):
        super().__init__("Sale not found", details={"sale_id": sale_id} if sale_id is not None else None)


class InsufficientStock(PosError):
    """Requested quantity exceeds the product's current stock level."""
    status_code = 409

    def __init__(self, product_id: int, requested: int, on_hand: int):
        super().__init__(
            "Insufficient stock",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "on_hand": on_hand,
            },
        )


class StorageError(PosError):
    """Persistence failure inside a unit of work; the unit was rolled back."""
    status_code = 500


class AuthenticationError(PosError):
    status_code = 401
