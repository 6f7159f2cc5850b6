from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from app.domain.errors import OrderingError
from app.domain.ordering import OrderingService
from app.persistence.pg import get_session

FAILURE_STATUS_CODES: dict[str, int] = {
    "NotFound": 404,
    "ValidationError": 400,
    "ProductNotFound": 400,
    "InsufficientStock": 400,
    "InvalidTransition": 400,
    "ReservationConflict": 409,
}


def failure_status(exc: OrderingError) -> int:
    return FAILURE_STATUS_CODES.get(exc.kind, 500)


def get_ordering_service(session: Session = Depends(get_session)) -> OrderingService:
    return OrderingService.for_session(session)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
