from __future__ import annotations

from typing import Any


class OrderingError(Exception):
    """Base for failures returned to callers of the ordering core.

    ``kind`` is the stable tag the request layer maps to a status code;
    ``ref_id`` names the offending product or order when there is one.
    """

    kind: str = "OrderingError"

    def __init__(self, message: str, ref_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.ref_id = ref_id

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.message, "ref_id": self.ref_id}


class NotFoundError(OrderingError):
    kind = "NotFound"


class ValidationError(OrderingError):
    kind = "ValidationError"


class ProductNotFoundError(OrderingError):
    kind = "ProductNotFound"


class InsufficientStockError(OrderingError):
    kind = "InsufficientStock"


class ReservationConflictError(OrderingError):
    kind = "ReservationConflict"


class InvalidTransitionError(OrderingError):
    kind = "InvalidTransition"
