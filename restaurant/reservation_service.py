from __future__ import annotations
import logging
from datetime import date, time

from sqlmodel import Session, select, func, or_

from .errors import NotFound, ValidationError
from .models import Reservation, ReservationStatus
from .reservations import BLOCKING_STATUSES, assign_table, conflicts_with, transition_reservation, validate_reservation_request
from .utils import now_utc, today as current_date
from .validation import check_email, require_text

logger = logging.getLogger(__name__)


def create_reservation(
    session: Session,
    customer_name: str,
    on_date: date,
    at_time: time,
    party_size: int,
    customer_email: str | None = None,
    customer_phone: str | None = None,
    table_number: int | None = None,
    notes: str | None = None,
    today: date | None = None,
) -> Reservation:
    """Store a new pending reservation.

    A table given here is only recorded; confirmation happens through
    :func:`assign_reservation_table` or a status change.
    """
    reservation = validate_reservation_request(
        on_date, at_time, party_size,
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=customer_phone,
        notes=notes,
        table_number=table_number,
        today=today,
    )
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    logger.info("Reservation %s created for %s on %s %s (party of %s)",
                reservation.id, reservation.customer_name, reservation.reserved_date,
                reservation.reserved_time.strftime("%H:%M"), reservation.party_size)
    return reservation


def get_reservation(session: Session, reservation_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id)
    if not reservation:
        raise NotFound(f"Reservation {reservation_id} not found")
    return reservation


def _save(session: Session, reservation: Reservation) -> Reservation:
    reservation.updated_at = now_utc()
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    return reservation


def change_reservation_status(session: Session, reservation_id: int,
                              new_status: ReservationStatus | None) -> Reservation:
    reservation = get_reservation(session, reservation_id)
    previous = reservation.status
    transition_reservation(reservation, new_status)
    _save(session, reservation)
    logger.info("Reservation %s moved from %s to %s", reservation.id, previous.value, reservation.status.value)
    return reservation


def count_conflicts(session: Session, table_number: int | None, on_date: date, at_time: time,
                    exclude_id: int | None = None) -> int:
    """Count table-holding reservations whose window overlaps ``at_time``.

    With ``table_number`` None the table filter is dropped: every table
    whose window overlaps counts.
    """
    stmt = select(Reservation).where(
        Reservation.reserved_date == on_date,
        Reservation.status.in_(BLOCKING_STATUSES),
    )
    if table_number is not None:
        stmt = stmt.where(Reservation.table_number == table_number)
    if exclude_id is not None:
        stmt = stmt.where(Reservation.id != exclude_id)
    return sum(1 for r in session.exec(stmt).all() if conflicts_with(r, on_date, at_time))


def is_table_available(session: Session, table_number: int | None, on_date: date, at_time: time,
                       exclude_id: int | None = None) -> bool:
    return count_conflicts(session, table_number, on_date, at_time, exclude_id) == 0


def occupied_tables(session: Session, on_date: date, at_time: time) -> list[int]:
    rows = session.exec(
        select(Reservation).where(
            Reservation.reserved_date == on_date,
            Reservation.status.in_(BLOCKING_STATUSES),
            Reservation.table_number != None,  # noqa: E711
        )
    ).all()
    return sorted({r.table_number for r in rows if conflicts_with(r, on_date, at_time)})


def assign_reservation_table(session: Session, reservation_id: int, table_number: int | None) -> Reservation:
    reservation = get_reservation(session, reservation_id)
    # invalid table numbers are rejected by assign_table
    if table_number is not None and table_number >= 1 and not is_table_available(
        session, table_number, reservation.reserved_date, reservation.reserved_time, exclude_id=reservation.id
    ):
        raise ValidationError(
            f"Table {table_number} is not available on {reservation.reserved_date} "
            f"at {reservation.reserved_time:%H:%M}"
        )
    assign_table(reservation, table_number)
    _save(session, reservation)
    logger.info("Reservation %s assigned to table %s (%s)",
                reservation.id, table_number, reservation.status.value)
    return reservation


def reservations_for_date(session: Session, on_date: date) -> list[Reservation]:
    return list(session.exec(
        select(Reservation).where(Reservation.reserved_date == on_date).order_by(Reservation.reserved_time)
    ).all())


def reservations_for_today(session: Session) -> list[Reservation]:
    return reservations_for_date(session, current_date())


def reservations_by_status(session: Session, status: ReservationStatus) -> list[Reservation]:
    return list(session.exec(
        select(Reservation)
        .where(Reservation.status == status)
        .order_by(Reservation.reserved_date.desc(), Reservation.reserved_time.asc())
    ).all())


def active_reservations(session: Session, today: date | None = None) -> list[Reservation]:
    return list(session.exec(
        select(Reservation)
        .where(Reservation.status.in_(BLOCKING_STATUSES), Reservation.reserved_date >= (today or current_date()))
        .order_by(Reservation.reserved_date, Reservation.reserved_time)
    ).all())


def reservations_for_table(session: Session, table_number: int, on_date: date) -> list[Reservation]:
    return list(session.exec(
        select(Reservation)
        .where(Reservation.table_number == table_number, Reservation.reserved_date == on_date)
        .order_by(Reservation.reserved_time)
    ).all())


def reservations_in_range(session: Session, start: date, end: date) -> list[Reservation]:
    if start > end:
        raise ValidationError("Start date must not be after end date")
    return list(session.exec(
        select(Reservation)
        .where(Reservation.reserved_date >= start, Reservation.reserved_date <= end)
        .order_by(Reservation.reserved_date, Reservation.reserved_time)
    ).all())


def search_reservations(session: Session, text: str) -> list[Reservation]:
    text = require_text(text, "Search text", 100)
    return list(session.exec(
        select(Reservation)
        .where(or_(func.lower(Reservation.customer_name).contains(text.lower()),
                   Reservation.customer_phone.contains(text)))
        .order_by(Reservation.reserved_date.desc())
    ).all())


def reservations_for_email(session: Session, email: str) -> list[Reservation]:
    email = check_email(email)
    if email is None:
        raise ValidationError("Email is required")
    return list(session.exec(
        select(Reservation)
        .where(Reservation.customer_email == email)
        .order_by(Reservation.reserved_date.desc(), Reservation.reserved_time.desc())
    ).all())
