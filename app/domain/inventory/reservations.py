"""Stock reservation for multi-item orders.

The product store only offers single-product atomic adjustments, so a
multi-item reservation is a sequence of forward steps. Each successful
decrement is remembered; when a later step fails the remembered steps are
undone in reverse before the failure is raised, leaving stock exactly as it
was before the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

from app.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    OrderingError,
    ProductNotFoundError,
    ReservationConflictError,
    ValidationError,
)
from app.domain.inventory.aggregates import Product
from app.domain.inventory.store import ProductStore

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    product_id: str
    quantity: int


@dataclass(frozen=True)
class RequestedItem:
    product_id: str
    quantity: int

    @classmethod
    def coerce(cls, value: Any) -> "RequestedItem":
        if isinstance(value, RequestedItem):
            item = value
        elif isinstance(value, dict):
            product_id = value.get("product_id") or value.get("productId")
            item = cls(product_id=product_id, quantity=value.get("quantity"))
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            item = cls(product_id=value[0], quantity=value[1])
        else:
            raise ValidationError(f"unsupported order item: {value!r}")

        if not item.product_id or not isinstance(item.product_id, str):
            raise ValidationError("order item requires a product_id")
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
            raise ValidationError(
                f"quantity must be a positive integer, got {item.quantity!r}",
                ref_id=item.product_id,
            )
        return item


@dataclass(frozen=True)
class PricedItem:
    product: Product
    quantity: int
    unit_price: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PricedOrder:
    items: tuple[PricedItem, ...]
    total: int


class StockReservationEngine:
    def __init__(self, products: ProductStore):
        self.products = products

    def price_and_validate(self, items: Iterable[Any]) -> PricedOrder:
        requested = [RequestedItem.coerce(item) for item in items]

        snapshots: dict[str, Product] = {}
        for item in requested:
            if item.product_id in snapshots:
                continue
            try:
                snapshots[item.product_id] = self.products.get(item.product_id)
            except NotFoundError as exc:
                raise ProductNotFoundError(
                    f"product {item.product_id} not found",
                    ref_id=item.product_id,
                ) from exc

        # Lines naming the same product draw on one stock counter.
        wanted: dict[str, int] = {}
        priced: list[PricedItem] = []
        for item in requested:
            product = snapshots[item.product_id]
            wanted[product.id] = wanted.get(product.id, 0) + item.quantity
            if wanted[product.id] > product.stock:
                raise InsufficientStockError(
                    f"insufficient stock for product {product.id} ({product.name})",
                    ref_id=product.id,
                )
            priced.append(PricedItem(product=product, quantity=item.quantity, unit_price=product.price))

        total = sum(item.subtotal for item in priced)
        return PricedOrder(items=tuple(priced), total=total)

    def reserve(self, priced_items: Sequence[PricedItem]) -> None:
        reserved: list[PricedItem] = []
        for item in priced_items:
            try:
                self.products.adjust_stock(item.product_id, -item.quantity, require_non_negative_result=True)
            except OrderingError as exc:
                logger.warning(
                    "reservation failed: product=%s qty=%s reason=%s compensating=%d",
                    item.product_id,
                    item.quantity,
                    exc,
                    len(reserved),
                )
                self._compensate(reserved)
                raise ReservationConflictError(
                    f"failed to reserve stock for product {item.product_id}",
                    ref_id=item.product_id,
                ) from exc
            except Exception:
                self._compensate(reserved)
                raise
            reserved.append(item)

    def _compensate(self, reserved: Sequence[PricedItem]) -> None:
        for item in reversed(reserved):
            try:
                self.products.adjust_stock(item.product_id, item.quantity, require_non_negative_result=False)
            except NotFoundError:
                logger.error(
                    "compensation lost: product=%s disappeared, %s unit(s) not restored",
                    item.product_id,
                    item.quantity,
                )

    def release(self, items: Iterable[StockLine]) -> list[str]:
        """Return reserved stock. Products that no longer exist are skipped and returned."""
        missing: list[str] = []
        for item in items:
            try:
                self.products.adjust_stock(item.product_id, item.quantity, require_non_negative_result=False)
            except NotFoundError:
                logger.warning(
                    "stock release skipped: product=%s no longer exists, qty=%s",
                    item.product_id,
                    item.quantity,
                )
                missing.append(item.product_id)
        return missing
