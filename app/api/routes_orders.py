from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, Field

from app.api.utils import get_ordering_service
from app.domain.errors import ValidationError
from app.domain.ordering import OrderingService

router = APIRouter(prefix="/v1", tags=["orders"])


class OrderItemRequest(BaseModel):
    product_id: str | None = Field(default=None, validation_alias=AliasChoices("product_id", "productId"))
    quantity: int | None = None


class CreateOrderRequest(BaseModel):
    customer_id: int | None = None
    items: list[OrderItemRequest] | None = None
    shipping_address: str | None = None


class UpdateOrderRequest(BaseModel):
    status: str | None = None
    shipping_address: str | None = None


@router.post("/orders", status_code=201)
def create_order(
    request: CreateOrderRequest,
    service: OrderingService = Depends(get_ordering_service),
):
    items = [item.model_dump() for item in request.items or []]
    return service.create_order(request.customer_id, items, request.shipping_address)


@router.get("/orders")
def list_orders(
    customer_id: int | None = Query(default=None),
    service: OrderingService = Depends(get_ordering_service),
):
    if customer_id is None:
        raise ValidationError("customer_id query parameter required")
    return service.list_orders_for_customer(customer_id)


@router.get("/orders/{order_id}")
def get_order(order_id: str, service: OrderingService = Depends(get_ordering_service)):
    return service.get_order(order_id)


@router.put("/orders/{order_id}")
def update_order(
    order_id: str,
    request: UpdateOrderRequest,
    service: OrderingService = Depends(get_ordering_service),
):
    if request.status == "cancelled":
        return service.cancel_order(order_id)
    if request.shipping_address:
        return service.update_shipping_address(order_id, request.shipping_address)
    if request.status:
        return service.set_status(order_id, request.status)
    raise ValidationError("no actionable fields provided", ref_id=order_id)


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, service: OrderingService = Depends(get_ordering_service)):
    # Orders are never removed; deleting one is a cancellation.
    return service.cancel_order(order_id)


@router.get("/orders/{order_id}/status")
def get_order_status(order_id: str, service: OrderingService = Depends(get_ordering_service)):
    return service.get_order_status(order_id)


@router.get("/orders/{order_id}/history")
def get_order_history(order_id: str, service: OrderingService = Depends(get_ordering_service)):
    return service.get_status_history(order_id)
