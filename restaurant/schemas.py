"""Request and response bodies of the JSON API."""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field

from .models import OrderStatus, ReservationStatus


class ProductCreate(SQLModel):
    name: str
    description: str
    price: Decimal
    category: str
    image_url: Optional[str] = None
    available: bool = True


class ProductUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    available: Optional[bool] = None


class AvailabilityUpdate(SQLModel):
    available: bool


class ProductRead(SQLModel):
    id: int
    name: str
    description: str
    price: Decimal
    category: str
    image_url: Optional[str] = None
    available: bool


class ItemIn(SQLModel):
    product_id: int
    quantity: int
    notes: Optional[str] = None


class OrderCreate(SQLModel):
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    table_number: Optional[int] = None
    notes: Optional[str] = None
    items: list[ItemIn] = Field(default_factory=list)


class QuantityUpdate(SQLModel):
    quantity: int


class OrderStatusUpdate(SQLModel):
    status: Optional[OrderStatus] = None


class LineItemRead(SQLModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    notes: Optional[str] = None


class OrderRead(SQLModel):
    id: int
    number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: OrderStatus
    total: Decimal
    table_number: Optional[int] = None
    notes: Optional[str] = None
    ordered_at: datetime
    delivered_at: Optional[datetime] = None
    items: list[LineItemRead] = Field(default_factory=list)


class ReservationCreate(SQLModel):
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    reserved_date: date
    reserved_time: time
    party_size: int
    table_number: Optional[int] = None
    notes: Optional[str] = None


class ReservationStatusUpdate(SQLModel):
    status: Optional[ReservationStatus] = None


class TableAssignment(SQLModel):
    table_number: Optional[int] = None


class ReservationRead(SQLModel):
    id: int
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    reserved_date: date
    reserved_time: time
    party_size: int
    status: ReservationStatus
    table_number: Optional[int] = None
    notes: Optional[str] = None


class Availability(SQLModel):
    table_number: Optional[int] = None
    reserved_date: date
    reserved_time: time
    conflicts: int
    available: bool
