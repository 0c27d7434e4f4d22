"""Reservation lifecycle rules and the table occupancy window."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from . import config
from .errors import InvalidArgument, InvalidTransition, ValidationError
from .models import Reservation, ReservationStatus
from .utils import today as current_date
from .validation import check_email, check_phone, check_range, optional_text, require_text

TERMINAL_STATUSES = {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
# statuses that hold a table
BLOCKING_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.OCCUPIED)

MIN_PARTY = 1
MAX_PARTY = 20


def transition_reservation(reservation: Reservation, new_status: ReservationStatus | None) -> Reservation:
    if new_status is None:
        raise InvalidTransition("New status must be given")
    if reservation.status in TERMINAL_STATUSES and new_status != reservation.status:
        raise InvalidTransition(
            f"Reservation {reservation.id} is {reservation.status.value.lower()} and cannot change"
        )
    reservation.status = new_status
    return reservation


def assign_table(reservation: Reservation, table_number: int | None) -> Reservation:
    """Put the reservation on a table; a pending reservation becomes confirmed."""
    if table_number is None or table_number < 1:
        raise InvalidArgument("Table number must be 1 or greater")
    reservation.table_number = table_number
    if reservation.status == ReservationStatus.PENDING:
        reservation.status = ReservationStatus.CONFIRMED
    return reservation


def check_operating_hours(at_time: time) -> None:
    if at_time < config.OPENING_TIME or at_time > config.CLOSING_TIME:
        raise ValidationError(
            f"Reservation time must be between {config.OPENING_TIME:%H:%M} and {config.CLOSING_TIME:%H:%M}"
        )


def validate_reservation_request(
    on_date: date | None,
    at_time: time | None,
    party_size: int | None,
    customer_name: str | None = None,
    customer_email: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    table_number: int | None = None,
    today: date | None = None,
) -> Reservation:
    """Check a reservation request and build the (unsaved) reservation."""
    if on_date is None:
        raise ValidationError("Reservation date is required")
    if at_time is None:
        raise ValidationError("Reservation time is required")
    if on_date <= (today or current_date()):
        raise ValidationError("Reservation date must be in the future")
    check_operating_hours(at_time)
    party_size = check_range(party_size, "Party size", MIN_PARTY, MAX_PARTY)
    if table_number is not None and table_number < 1:
        raise ValidationError("Table number must be 1 or greater")

    return Reservation(
        customer_name=require_text(customer_name, "Customer name", 100),
        customer_email=check_email(customer_email),
        customer_phone=check_phone(customer_phone),
        reserved_date=on_date,
        reserved_time=at_time,
        party_size=party_size,
        table_number=table_number,
        notes=optional_text(notes, "Notes", 500),
        status=ReservationStatus.PENDING,
    )


def occupancy_window(on_date: date, at_time: time) -> tuple[datetime, datetime]:
    start = datetime.combine(on_date, at_time)
    return start, start + timedelta(hours=config.OCCUPANCY_HOURS)


def windows_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    # half-open intervals: a window ending at 21:00 does not clash with one starting at 21:00
    return s1 < e2 and s2 < e1


def conflicts_with(reservation: Reservation, on_date: date, at_time: time) -> bool:
    if reservation.status not in BLOCKING_STATUSES:
        return False
    if reservation.reserved_date != on_date:
        return False
    return windows_overlap(
        *occupancy_window(reservation.reserved_date, reservation.reserved_time),
        *occupancy_window(on_date, at_time),
    )
