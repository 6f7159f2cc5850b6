from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.utils import get_ordering_service
from app.domain.ordering import OrderingService

router = APIRouter(prefix="/v1", tags=["products"])


class CreateProductRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    price: int | None = Field(default=None, description="smallest currency unit")
    stock: int | None = None
    category: str | None = None


@router.get("/products")
def list_products(service: OrderingService = Depends(get_ordering_service)):
    return service.list_products()


@router.get("/products/{product_id}")
def get_product(product_id: str, service: OrderingService = Depends(get_ordering_service)):
    return service.get_product(product_id)


@router.post("/products", status_code=201)
def create_product(
    request: CreateProductRequest,
    service: OrderingService = Depends(get_ordering_service),
):
    return service.create_product(request.model_dump())
