from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.domain.errors import ValidationError
from app.domain.inventory.aggregates import iso_z, utc_now


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        try:
            return cls(value)
        except ValueError as exc:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"unknown order status {value!r}; expected one of: {allowed}") from exc

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def allows_cancellation(self) -> bool:
        return OrderStatus.CANCELLED in TRANSITIONS[self]

    @property
    def allows_address_change(self) -> bool:
        return self not in SHIPPING_STATUSES

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in TRANSITIONS[self]


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Once the parcel has left, neither cancellation nor an address change is possible.
SHIPPING_STATUSES = frozenset({OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED})


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    quantity: int
    price_at_purchase: int

    @property
    def subtotal(self) -> int:
        return self.quantity * self.price_at_purchase

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_at_purchase": self.price_at_purchase,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItem":
        return cls(
            product_id=data["product_id"],
            quantity=int(data["quantity"]),
            price_at_purchase=int(data["price_at_purchase"]),
        )


@dataclass
class Order:
    id: str
    customer_id: int
    items: tuple[OrderItem, ...]
    total_amount: int
    status: OrderStatus
    shipping_address: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    estimated_delivery: datetime | None = None

    def status_view(self) -> dict:
        return {
            "order_id": self.id,
            "status": self.status.value,
            "estimated_delivery": iso_z(self.estimated_delivery),
            "created_at": iso_z(self.created_at),
            "updated_at": iso_z(self.updated_at),
        }

    def to_dict(self) -> dict:
        return {
            "order_id": self.id,
            "customer_id": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "total_amount": self.total_amount,
            "shipping_address": self.shipping_address,
            "status": self.status.value,
            "created_at": iso_z(self.created_at),
            "updated_at": iso_z(self.updated_at),
            "estimated_delivery": iso_z(self.estimated_delivery),
        }


@dataclass(frozen=True)
class StatusChange:
    order_id: str
    from_status: OrderStatus | None
    to_status: OrderStatus
    source: str
    override: bool
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value,
            "source": self.source,
            "override": self.override,
            "created_at": iso_z(self.created_at),
        }
