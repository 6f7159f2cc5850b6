from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from app.domain.errors import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_z(value: datetime | None) -> str | None:
    value = as_utc(value)
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Product:
    """Point-in-time snapshot of a product row.

    Snapshots are never written back; stock only moves through
    ``ProductStore.adjust_stock``.
    """

    id: str
    name: str
    price: int
    stock: int
    description: str | None = None
    category: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def with_stock(self, stock: int, updated_at: datetime) -> "Product":
        return replace(self, stock=stock, updated_at=updated_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "created_at": iso_z(self.created_at),
            "updated_at": iso_z(self.updated_at),
        }


def validate_new_product(name: str, price: int, stock: int) -> None:
    if not name or not name.strip():
        raise ValidationError("product name is required")
    if isinstance(price, bool) or not isinstance(price, int):
        raise ValidationError("price must be an integer amount in the smallest currency unit")
    if isinstance(stock, bool) or not isinstance(stock, int):
        raise ValidationError("stock must be an integer")
    if price < 0:
        raise ValidationError(f"price must be non-negative, got {price}")
    if stock < 0:
        raise ValidationError(f"stock must be non-negative, got {stock}")
