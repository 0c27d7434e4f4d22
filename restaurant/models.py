from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    OCCUPIED = "OCCUPIED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    full_name: str
    password_hash: str
    is_admin: bool = False
    created_at: datetime = Field(default_factory=_now)


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, index=True)
    description: str = Field(max_length=500)
    price: Decimal = Field(max_digits=10, decimal_places=2)
    category: str = Field(max_length=50, index=True)
    image_url: Optional[str] = Field(default=None, max_length=255)
    available: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    line_items: list["LineItem"] = Relationship(back_populates="product")


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    number: str = Field(max_length=20, index=True, unique=True)  # PED + yyyymmdd + 4 digits
    customer_name: str = Field(max_length=100)
    customer_email: Optional[str] = Field(default=None, max_length=100)
    customer_phone: Optional[str] = Field(default=None, max_length=15)

    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    total: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    table_number: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    ordered_at: datetime = Field(default_factory=_now, index=True)
    delivered_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    items: list["LineItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "LineItem.id"},
    )


class LineItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: Optional[int] = Field(default=None, foreign_key="order.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="product.id", index=True)

    quantity: int = 1
    # captured when the line is created; later price changes on the product do not apply
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)
    subtotal: Decimal = Field(max_digits=10, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=_now)

    order: Optional[Order] = Relationship(back_populates="items")
    product: Optional[Product] = Relationship(back_populates="line_items")


class Reservation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    customer_name: str = Field(max_length=100)
    customer_email: Optional[str] = Field(default=None, max_length=100)
    customer_phone: Optional[str] = Field(default=None, max_length=15)

    reserved_date: date = Field(index=True)
    reserved_time: time
    party_size: int
    status: ReservationStatus = Field(default=ReservationStatus.PENDING, index=True)
    table_number: Optional[int] = Field(default=None, index=True)
    notes: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
