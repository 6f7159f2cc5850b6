from __future__ import annotations

import threading
from typing import Iterable, Protocol
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from app.domain.errors import InsufficientStockError, NotFoundError
from app.domain.inventory.aggregates import Product, as_utc, utc_now, validate_new_product
from app.persistence.models import ProductModel


class ProductStore(Protocol):
    def get(self, product_id: str) -> Product:
        ...

    def list(self) -> list[Product]:
        ...

    def create(
        self,
        name: str,
        description: str | None,
        price: int,
        stock: int,
        category: str | None = None,
    ) -> Product:
        ...

    def adjust_stock(self, product_id: str, delta: int, require_non_negative_result: bool) -> Product:
        ...

    def replace_all(self, products: Iterable[dict]) -> list[Product]:
        ...


def _not_found(product_id: str) -> NotFoundError:
    return NotFoundError(f"product {product_id} not found", ref_id=product_id)


def _insufficient(product_id: str, current: int, delta: int) -> InsufficientStockError:
    return InsufficientStockError(
        f"insufficient stock for product {product_id}: stock={current}, delta={delta}",
        ref_id=product_id,
    )


class InMemoryProductStore:
    """Dict-backed store with one lock per product id.

    Adjustments on different products never contend; the registry lock only
    guards inserting and enumerating entries.
    """

    def __init__(self) -> None:
        self._products: dict[str, Product] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise _not_found(product_id)
        return product

    def list(self) -> list[Product]:
        with self._registry_lock:
            products = list(self._products.values())
        return sorted(products, key=lambda p: (p.name, p.id))

    def create(
        self,
        name: str,
        description: str | None,
        price: int,
        stock: int,
        category: str | None = None,
    ) -> Product:
        validate_new_product(name, price, stock)
        now = utc_now()
        product = Product(
            id=str(uuid4()),
            name=name,
            description=description,
            category=category,
            price=price,
            stock=stock,
            created_at=now,
            updated_at=now,
        )
        with self._registry_lock:
            self._locks[product.id] = threading.Lock()
            self._products[product.id] = product
        return product

    def adjust_stock(self, product_id: str, delta: int, require_non_negative_result: bool) -> Product:
        lock = self._locks.get(product_id)
        if lock is None:
            raise _not_found(product_id)
        with lock:
            current = self._products.get(product_id)
            if current is None:
                raise _not_found(product_id)
            new_stock = current.stock + delta
            if require_non_negative_result and new_stock < 0:
                raise _insufficient(product_id, current.stock, delta)
            updated = current.with_stock(new_stock, utc_now())
            self._products[product_id] = updated
            return updated

    def replace_all(self, products: Iterable[dict]) -> list[Product]:
        with self._registry_lock:
            self._products.clear()
            self._locks.clear()
        return [self.create(**fields) for fields in products]


def _to_product(row: ProductModel) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description,
        category=row.category,
        price=int(row.price),
        stock=int(row.stock),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class SqlProductStore:
    def __init__(self, session: Session):
        self.session = session

    def _row(self, product_id: str) -> ProductModel | None:
        # Stock is changed with bulk UPDATEs, so refresh whatever the identity map holds.
        stmt = (
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .execution_options(populate_existing=True)
        )
        return self.session.scalar(stmt)

    def get(self, product_id: str) -> Product:
        row = self._row(product_id)
        if row is None:
            raise _not_found(product_id)
        return _to_product(row)

    def list(self) -> list[Product]:
        stmt = (
            select(ProductModel)
            .order_by(ProductModel.name.asc(), ProductModel.id.asc())
            .execution_options(populate_existing=True)
        )
        return [_to_product(row) for row in self.session.scalars(stmt).all()]

    def create(
        self,
        name: str,
        description: str | None,
        price: int,
        stock: int,
        category: str | None = None,
    ) -> Product:
        validate_new_product(name, price, stock)
        now = utc_now()
        row = ProductModel(
            id=str(uuid4()),
            name=name,
            description=description,
            category=category,
            price=price,
            stock=stock,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return _to_product(row)

    def adjust_stock(self, product_id: str, delta: int, require_non_negative_result: bool) -> Product:
        stmt = (
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + delta, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if require_non_negative_result:
            stmt = stmt.where(ProductModel.stock + delta >= 0)

        result = self.session.execute(stmt)
        if result.rowcount == 0:
            current = self.session.scalar(select(ProductModel.stock).where(ProductModel.id == product_id))
            if current is None:
                raise _not_found(product_id)
            raise _insufficient(product_id, int(current), delta)
        return self.get(product_id)

    def replace_all(self, products: Iterable[dict]) -> list[Product]:
        self.session.execute(delete(ProductModel).execution_options(synchronize_session=False))
        return [self.create(**fields) for fields in products]
