from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable
from uuid import uuid4

from app.domain.errors import InvalidTransitionError, ValidationError
from app.domain.inventory.aggregates import utc_now
from app.domain.inventory.reservations import StockReservationEngine
from app.domain.orders.aggregates import Order, OrderItem, OrderStatus, StatusChange
from app.domain.orders.repository import OrderRepository

logger = logging.getLogger(__name__)

# Bounded re-reads when a compare-and-set loses to a concurrent status change.
_CAS_ATTEMPTS = 3


def validate_customer_id(customer_id: Any) -> int:
    if isinstance(customer_id, bool) or not isinstance(customer_id, int) or customer_id < 1:
        raise ValidationError(f"customer_id must be a positive integer, got {customer_id!r}")
    return customer_id


def _validate_address(address: Any, required: bool) -> str | None:
    if address is None or (isinstance(address, str) and not address.strip()):
        if required:
            raise ValidationError("shipping_address must be a non-empty string")
        return None
    if not isinstance(address, str):
        raise ValidationError("shipping_address must be a string")
    return address.strip()


class OrderLifecycleManager:
    def __init__(
        self,
        orders: OrderRepository,
        reservations: StockReservationEngine,
        estimated_delivery_days: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.orders = orders
        self.reservations = reservations
        self.estimated_delivery_days = estimated_delivery_days
        self.clock = clock

    def create_order(self, customer_id: Any, items: Iterable[Any] | None, shipping_address: Any = None) -> Order:
        customer_id = validate_customer_id(customer_id)
        requested = list(items or [])
        if not requested:
            raise ValidationError("customer_id and items are required")
        address = _validate_address(shipping_address, required=False)

        priced = self.reservations.price_and_validate(requested)
        self.reservations.reserve(priced.items)

        now = self.clock()
        order = Order(
            id=str(uuid4()),
            customer_id=customer_id,
            items=tuple(
                OrderItem(product_id=p.product_id, quantity=p.quantity, price_at_purchase=p.unit_price)
                for p in priced.items
            ),
            total_amount=priced.total,
            status=OrderStatus.CONFIRMED,
            shipping_address=address,
            created_at=now,
            updated_at=now,
            estimated_delivery=now + timedelta(days=self.estimated_delivery_days),
        )
        try:
            self.orders.add(order)
            self.orders.record_transition(
                StatusChange(
                    order_id=order.id,
                    from_status=OrderStatus.PENDING,
                    to_status=OrderStatus.CONFIRMED,
                    source="create",
                    override=False,
                    created_at=now,
                )
            )
        except Exception:
            logger.exception("order %s could not be stored; releasing its reservation", order.id)
            self.reservations.release(order.items)
            raise

        logger.info(
            "order created: order_id=%s customer_id=%s items=%d total=%s",
            order.id,
            customer_id,
            len(order.items),
            order.total_amount,
        )
        return order

    def cancel_order(self, order_id: str) -> Order:
        for _ in range(_CAS_ATTEMPTS):
            order = self.orders.get(order_id)
            if order.status is OrderStatus.CANCELLED:
                raise InvalidTransitionError(f"order {order_id} is already cancelled", ref_id=order_id)
            if not order.status.allows_cancellation:
                raise InvalidTransitionError(
                    f"cannot cancel order {order_id}: already {order.status.value}",
                    ref_id=order_id,
                )
            now = self.clock()
            # Claiming the status first means only one caller ever releases this order's stock.
            if self.orders.compare_and_set_status(order_id, order.status, OrderStatus.CANCELLED, now):
                break
        else:
            raise InvalidTransitionError(f"order {order_id} changed concurrently; not cancelled", ref_id=order_id)

        try:
            missing = self.reservations.release(order.items)
        except Exception:
            logger.exception("order %s cancelled but releasing its stock failed", order_id)
            raise
        finally:
            # The status is already claimed, so the audit row is written either way.
            self.orders.record_transition(
                StatusChange(
                    order_id=order_id,
                    from_status=order.status,
                    to_status=OrderStatus.CANCELLED,
                    source="cancel",
                    override=False,
                    created_at=now,
                )
            )
        if missing:
            logger.warning(
                "order %s cancelled but stock could not be restored for products: %s",
                order_id,
                ", ".join(missing),
            )
        logger.info("order cancelled: order_id=%s previous=%s", order_id, order.status.value)

        order.status = OrderStatus.CANCELLED
        order.updated_at = now
        return order

    def update_shipping_address(self, order_id: str, address: Any) -> Order:
        new_address = _validate_address(address, required=True)
        for _ in range(_CAS_ATTEMPTS):
            order = self.orders.get(order_id)
            if not order.status.allows_address_change:
                raise InvalidTransitionError(
                    f"cannot change address of order {order_id} after shipping",
                    ref_id=order_id,
                )
            now = self.clock()
            if self.orders.set_shipping_address(order_id, order.status, new_address, now):
                order.shipping_address = new_address
                order.updated_at = now
                return order
        raise InvalidTransitionError(f"order {order_id} changed concurrently; address not updated", ref_id=order_id)

    def set_status(self, order_id: str, new_status: str | OrderStatus) -> Order:
        """Administrative status override.

        Edges are not checked against the transition table. Cancellation is
        routed through :meth:`cancel_order` so that stock is released; every
        other move is applied as requested and audited, with ``override`` set
        when the move is not a regular edge. Moving a cancelled order anywhere
        else reserves its items again and fails if the stock is gone.
        """
        target = OrderStatus.parse(new_status)
        if target is OrderStatus.CANCELLED:
            return self.cancel_order(order_id)

        for _ in range(_CAS_ATTEMPTS):
            order = self.orders.get(order_id)
            # Cancellation released the stock; leaving cancelled has to take it again.
            revived = order.status is OrderStatus.CANCELLED
            if revived:
                priced = self.reservations.price_and_validate(
                    [(item.product_id, item.quantity) for item in order.items]
                )
                self.reservations.reserve(priced.items)
            now = self.clock()
            if self.orders.compare_and_set_status(order_id, order.status, target, now):
                break
            if revived:
                self.reservations.release(priced.items)
        else:
            raise InvalidTransitionError(f"order {order_id} changed concurrently; status not set", ref_id=order_id)

        override = not order.status.can_transition_to(target)
        if override:
            logger.warning(
                "status override: order_id=%s %s -> %s is outside the transition table",
                order_id,
                order.status.value,
                target.value,
            )
        if revived:
            logger.info("order revived: order_id=%s stock reserved again", order_id)

        self.orders.record_transition(
            StatusChange(
                order_id=order_id,
                from_status=order.status,
                to_status=target,
                source="set_status",
                override=override,
                created_at=now,
            )
        )
        order.status = target
        order.updated_at = now
        return order

    def get_status(self, order_id: str) -> dict:
        return self.orders.get(order_id).status_view()

    def status_history(self, order_id: str) -> list[StatusChange]:
        return self.orders.history(order_id)
