from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.domain.errors import NotFoundError
from app.domain.inventory.aggregates import as_utc
from app.domain.orders.aggregates import Order, OrderItem, OrderStatus, StatusChange
from app.persistence.models import OrderModel, OrderStatusAuditModel


class OrderRepository(Protocol):
    def add(self, order: Order) -> None:
        ...

    def get(self, order_id: str) -> Order:
        ...

    def list_for_customer(self, customer_id: int) -> list[Order]:
        ...

    def compare_and_set_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        updated_at: datetime,
    ) -> bool:
        ...

    def set_shipping_address(
        self,
        order_id: str,
        expected: OrderStatus,
        address: str,
        updated_at: datetime,
    ) -> bool:
        ...

    def record_transition(self, change: StatusChange) -> None:
        ...

    def history(self, order_id: str) -> list[StatusChange]:
        ...


def _order_not_found(order_id: str) -> NotFoundError:
    return NotFoundError(f"order {order_id} not found", ref_id=order_id)


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._history: dict[str, list[StatusChange]] = {}
        self._lock = threading.Lock()

    def add(self, order: Order) -> None:
        with self._lock:
            self._orders[order.id] = replace(order)

    def get(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise _order_not_found(order_id)
            return replace(order)

    def list_for_customer(self, customer_id: int) -> list[Order]:
        with self._lock:
            orders = [replace(o) for o in self._orders.values() if o.customer_id == customer_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def compare_and_set_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        updated_at: datetime,
    ) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise _order_not_found(order_id)
            if order.status != expected:
                return False
            self._orders[order_id] = replace(order, status=new_status, updated_at=updated_at)
            return True

    def set_shipping_address(
        self,
        order_id: str,
        expected: OrderStatus,
        address: str,
        updated_at: datetime,
    ) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise _order_not_found(order_id)
            if order.status != expected:
                return False
            self._orders[order_id] = replace(order, shipping_address=address, updated_at=updated_at)
            return True

    def record_transition(self, change: StatusChange) -> None:
        with self._lock:
            self._history.setdefault(change.order_id, []).append(change)

    def history(self, order_id: str) -> list[StatusChange]:
        with self._lock:
            if order_id not in self._orders:
                raise _order_not_found(order_id)
            return list(self._history.get(order_id, []))


def _to_order(row: OrderModel) -> Order:
    return Order(
        id=row.id,
        customer_id=int(row.customer_id),
        items=tuple(OrderItem.from_dict(item) for item in row.items or []),
        total_amount=int(row.total_amount),
        status=OrderStatus(row.status),
        shipping_address=row.shipping_address,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        estimated_delivery=as_utc(row.estimated_delivery),
    )


class SqlOrderRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, order: Order) -> None:
        self.session.add(
            OrderModel(
                id=order.id,
                customer_id=order.customer_id,
                items=[item.to_dict() for item in order.items],
                total_amount=order.total_amount,
                shipping_address=order.shipping_address,
                status=order.status.value,
                created_at=order.created_at,
                updated_at=order.updated_at,
                estimated_delivery=order.estimated_delivery,
            )
        )
        self.session.flush()

    def get(self, order_id: str) -> Order:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        row = self.session.scalar(stmt)
        if row is None:
            raise _order_not_found(order_id)
        return _to_order(row)

    def list_for_customer(self, customer_id: int) -> list[Order]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.customer_id == customer_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.asc())
            .execution_options(populate_existing=True)
        )
        return [_to_order(row) for row in self.session.scalars(stmt).all()]

    def _conditional_update(self, order_id: str, expected: OrderStatus, values: dict) -> bool:
        stmt = (
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .where(OrderModel.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount == 1:
            return True
        exists = self.session.scalar(select(OrderModel.id).where(OrderModel.id == order_id))
        if exists is None:
            raise _order_not_found(order_id)
        return False

    def compare_and_set_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        updated_at: datetime,
    ) -> bool:
        return self._conditional_update(
            order_id,
            expected,
            {"status": new_status.value, "updated_at": updated_at},
        )

    def set_shipping_address(
        self,
        order_id: str,
        expected: OrderStatus,
        address: str,
        updated_at: datetime,
    ) -> bool:
        return self._conditional_update(
            order_id,
            expected,
            {"shipping_address": address, "updated_at": updated_at},
        )

    def record_transition(self, change: StatusChange) -> None:
        self.session.add(
            OrderStatusAuditModel(
                order_id=change.order_id,
                from_status=change.from_status.value if change.from_status else None,
                to_status=change.to_status.value,
                source=change.source,
                override=change.override,
                created_at=change.created_at,
            )
        )
        self.session.flush()

    def history(self, order_id: str) -> list[StatusChange]:
        self.get(order_id)
        stmt = (
            select(OrderStatusAuditModel)
            .where(OrderStatusAuditModel.order_id == order_id)
            .order_by(OrderStatusAuditModel.id.asc())
        )
        return [
            StatusChange(
                order_id=row.order_id,
                from_status=OrderStatus(row.from_status) if row.from_status else None,
                to_status=OrderStatus(row.to_status),
                source=row.source,
                override=bool(row.override),
                created_at=as_utc(row.created_at),
            )
            for row in self.session.scalars(stmt).all()
        ]
