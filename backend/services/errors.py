"""
Service errors.

Services raise these; the API layer turns them into
``{"error": <message>, ...}`` responses with ``status_code``.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.message, **self.extra}


class ValidationError(ServiceError):
    """Malformed or missing input (title, stock, qty, book_id)."""

    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """The order is not in the state the requested transition needs."""

    status_code = 400


class InsufficientStockError(ConflictError):
    def __init__(self, stock: int, message: str = "insufficient stock") -> None:
        super().__init__(message, stock=stock)
        self.stock = stock


class InternalError(ServiceError):
    """Storage failure or broken invariant (e.g. an order's book vanished)."""

    status_code = 500
