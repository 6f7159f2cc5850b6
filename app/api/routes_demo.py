from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.utils import get_ordering_service
from app.core.config import get_settings
from app.demo import seed_demo_catalog
from app.domain.ordering import OrderingService

router = APIRouter(prefix="/v1", tags=["demo"])


@router.post("/seed")
def demo_seed(service: OrderingService = Depends(get_ordering_service)):
    if not get_settings().seed_enabled:
        raise HTTPException(status_code=403, detail="demo seeding is disabled")
    return {"created": seed_demo_catalog(service.products)}
