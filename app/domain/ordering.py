from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.domain.errors import NotFoundError, ValidationError
from app.domain.inventory.reservations import StockReservationEngine
from app.domain.inventory.store import ProductStore, SqlProductStore
from app.domain.orders.aggregates import Order
from app.domain.orders.lifecycle import OrderLifecycleManager, validate_customer_id
from app.domain.orders.repository import OrderRepository, SqlOrderRepository

ORDER_LIST_PRODUCT_FIELDS = ("name", "price")
ORDER_DETAIL_PRODUCT_FIELDS = ("name", "description", "price")


class OrderingService:
    """Operations the request layer calls; payloads are plain JSON-ready dicts."""

    def __init__(
        self,
        products: ProductStore,
        orders: OrderRepository,
        estimated_delivery_days: int = 5,
    ):
        self.products = products
        self.orders = orders
        self.reservations = StockReservationEngine(products)
        self.lifecycle = OrderLifecycleManager(
            orders,
            self.reservations,
            estimated_delivery_days=estimated_delivery_days,
        )

    @classmethod
    def for_session(cls, session: Session) -> "OrderingService":
        settings = get_settings()
        return cls(
            SqlProductStore(session),
            SqlOrderRepository(session),
            estimated_delivery_days=settings.estimated_delivery_days,
        )

    # products

    def list_products(self) -> list[dict]:
        return [product.to_dict() for product in self.products.list()]

    def get_product(self, product_id: str) -> dict:
        return self.products.get(product_id).to_dict()

    def create_product(self, fields: dict[str, Any]) -> dict:
        if fields.get("price") is None:
            raise ValidationError("price is required")
        stock = fields.get("stock")
        product = self.products.create(
            name=fields.get("name") or "",
            description=fields.get("description"),
            price=fields["price"],
            stock=0 if stock is None else stock,
            category=fields.get("category"),
        )
        return product.to_dict()

    # orders

    def create_order(self, customer_id: Any, items: Iterable[Any] | None, shipping_address: Any = None) -> dict:
        order = self.lifecycle.create_order(customer_id, items, shipping_address)
        return {"order_id": order.id, "status": order.status.value, "total_amount": order.total_amount}

    def list_orders_for_customer(self, customer_id: Any) -> list[dict]:
        customer_id = validate_customer_id(customer_id)
        return [
            self._with_products(order, ORDER_LIST_PRODUCT_FIELDS)
            for order in self.orders.list_for_customer(customer_id)
        ]

    def get_order(self, order_id: str) -> dict:
        return self._with_products(self.orders.get(order_id), ORDER_DETAIL_PRODUCT_FIELDS)

    def cancel_order(self, order_id: str) -> dict:
        order = self.lifecycle.cancel_order(order_id)
        return {"ok": True, "order_id": order.id, "status": order.status.value}

    def update_shipping_address(self, order_id: str, address: Any) -> dict:
        order = self.lifecycle.update_shipping_address(order_id, address)
        return {"ok": True, "order_id": order.id, "shipping_address": order.shipping_address}

    def set_status(self, order_id: str, status: Any) -> dict:
        order = self.lifecycle.set_status(order_id, status)
        return {"ok": True, "order_id": order.id, "status": order.status.value}

    def get_order_status(self, order_id: str) -> dict:
        return self.lifecycle.get_status(order_id)

    def get_status_history(self, order_id: str) -> dict:
        history = self.lifecycle.status_history(order_id)
        return {"order_id": order_id, "history": [change.to_dict() for change in history]}

    def _with_products(self, order: Order, fields: tuple[str, ...]) -> dict:
        payload = order.to_dict()
        cache: dict[str, dict | None] = {}
        for item in payload["items"]:
            product_id = item["product_id"]
            if product_id not in cache:
                try:
                    product = self.products.get(product_id).to_dict()
                    cache[product_id] = {"id": product_id, **{f: product[f] for f in fields}}
                except NotFoundError:
                    cache[product_id] = None
            item["product"] = cache[product_id]
        return payload
