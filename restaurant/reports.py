from __future__ import annotations
import csv
from collections import defaultdict
from datetime import date, datetime, time
from decimal import Decimal
from io import StringIO
from typing import Iterable

from sqlmodel import Session, select, func

from .models import Order, OrderStatus, Reservation, ReservationStatus
from .utils import fmt_dt


def order_stats(session: Session) -> dict[str, int]:
    rows = session.exec(select(Order.status, func.count()).group_by(Order.status)).all()
    counts = {status: 0 for status in OrderStatus}
    counts.update({status: n for status, n in rows})
    stats = {status.value: n for status, n in counts.items()}
    stats["total"] = sum(counts.values())
    return stats


def reservation_stats(session: Session) -> dict[str, int]:
    rows = session.exec(select(Reservation.status, func.count()).group_by(Reservation.status)).all()
    counts = {status: 0 for status in ReservationStatus}
    counts.update({status: n for status, n in rows})
    stats = {status.value: n for status, n in counts.items()}
    stats["total"] = sum(counts.values())
    return stats


def order_daily_stats(session: Session, since: date) -> list[dict]:
    """Orders and sales per day from ``since`` on, newest day first."""
    orders = session.exec(
        select(Order).where(Order.ordered_at >= datetime.combine(since, time.min))
    ).all()
    per_day = defaultdict(lambda: {"count": 0, "sales": Decimal("0")})
    for o in orders:
        day = per_day[o.ordered_at.date()]
        day["count"] += 1
        day["sales"] += Decimal(o.total)
    return [
        {"date": d, "count": v["count"], "sales": v["sales"]}
        for d, v in sorted(per_day.items(), reverse=True)
    ]


def reservation_daily_stats(session: Session, since: date) -> list[dict]:
    rows = session.exec(
        select(Reservation.reserved_date, Reservation.status, func.count())
        .where(Reservation.reserved_date >= since)
        .group_by(Reservation.reserved_date, Reservation.status)
    ).all()
    out = [{"date": d, "status": s.value, "count": n} for d, s, n in rows]
    out.sort(key=lambda r: (r["date"], r["status"]), reverse=True)
    return out


def orders_csv(orders: Iterable[Order]) -> str:
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow(["number", "customer_name", "customer_phone", "status", "table_number",
                "ordered_at", "delivered_at", "product", "quantity", "unit_price", "subtotal", "order_total"])
    for o in orders:
        for it in o.items:
            w.writerow([
                o.number,
                o.customer_name,
                o.customer_phone or "",
                o.status.value,
                o.table_number or "",
                fmt_dt(o.ordered_at),
                fmt_dt(o.delivered_at) if o.delivered_at else "",
                it.product.name if it.product else "",
                it.quantity,
                f"{it.unit_price:.2f}",
                f"{it.subtotal:.2f}",
                f"{o.total:.2f}",
            ])
    return buf.getvalue()
