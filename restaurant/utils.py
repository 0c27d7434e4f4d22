from __future__ import annotations
from datetime import date, datetime, timezone
from decimal import Decimal

from .models import OrderStatus, ReservationStatus

ORDER_STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.IN_PREPARATION: "In preparation",
    OrderStatus.READY: "Ready",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

RESERVATION_STATUS_LABELS = {
    ReservationStatus.PENDING: "Pending",
    ReservationStatus.CONFIRMED: "Confirmed",
    ReservationStatus.OCCUPIED: "Occupied",
    ReservationStatus.COMPLETED: "Completed",
    ReservationStatus.CANCELLED: "Cancelled",
    ReservationStatus.NO_SHOW: "No show",
}

def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def today() -> date:
    return date.today()

def fmt_dt(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    return dt.strftime("%Y-%m-%d %H:%M")

def soles(v: Decimal | None) -> str:
    if v is None:
        return "-"
    return f"S/ {v:.2f}"

def status_label(status) -> str:
    if isinstance(status, OrderStatus):
        return ORDER_STATUS_LABELS[status]
    if isinstance(status, ReservationStatus):
        return RESERVATION_STATUS_LABELS[status]
    return str(status)
