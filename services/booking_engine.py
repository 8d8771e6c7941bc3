"""
Booking engine: availability, overlap checks and price computation.

Works on a SQLAlchemy session handed in by the caller and has no HTTP/request
awareness. Times are "HH:MM" wall-clock strings inside a single day and are
compared as minutes since midnight; bookings never cross midnight.

Public API:
  overlaps(a_start, a_end, b_start, b_end)
  compute_availability(session, court, booking_date)
  check_conflict(session, court_id, booking_date, start_time, end_time, exclude_booking_id=None)
  compute_price(court, start_time, end_time)
  create_booking(session, user_id, draft)
  reschedule_booking(session, user_id, booking_id, changes)
  cancel_booking(session, user_id, booking_id)
  get_booking_for_viewer(session, user_id, booking_id, is_admin=False)
"""
import logging
import re
from dataclasses import dataclass
from datetime import date as date_type, datetime
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError

from models.booking import Booking, BookingStatus, CourtDayLedger
from models.court import Court
from models.slot import TimeSlot
from services.exceptions import (
    BookingEngineError,
    BookingNotFound,
    BookingValidationError,
    CourtUnavailable,
    ForbiddenOwnership,
    InvalidStatusTransition,
    InvalidTimeRange,
    SlotConflict,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_RACE_MESSAGE = "Time slot was just booked by another request, please try again"


# ── Time helpers ──────────────────────────────────────────────────────────────

def parse_time(value) -> int:
    """Convert "HH:MM" to minutes since midnight. "24:00" is accepted as end of day."""
    if not isinstance(value, str):
        raise BookingValidationError(f"Invalid time {value!r}. Use HH:MM")
    match = _TIME_RE.match(value.strip())
    if not match:
        raise BookingValidationError(f"Invalid time {value!r}. Use HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if minutes > 59 or total > MINUTES_PER_DAY:
        raise BookingValidationError(f"Invalid time {value!r}. Use HH:MM")
    return total


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value) -> str:
    """"8:00" -> "08:00"."""
    return format_minutes(parse_time(value))


def parse_date(value) -> date_type:
    """Accept a date, a datetime, "YYYY-MM-DD" or a full ISO timestamp."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    if not isinstance(value, str) or not value.strip():
        raise BookingValidationError("Invalid date. Use YYYY-MM-DD")

    text = value.strip()
    try:
        return date_type.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise BookingValidationError("Invalid date. Use YYYY-MM-DD") from None


def day_of_week(booking_date: date_type) -> int:
    """0 = Sunday ... 6 = Saturday, the numbering TimeSlot.day_of_week uses."""
    return (booking_date.weekday() + 1) % 7


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True if half-open window [a_start, a_end) overlaps [b_start, b_end)."""
    return not (a_end <= b_start or a_start >= b_end)


def _as_id(value, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BookingValidationError(f"Invalid {label}") from None


# ── Request structs ───────────────────────────────────────────────────────────

@dataclass
class BookingDraft:
    court_id: Optional[int | str] = None
    booking_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: Optional[str] = None

    def is_complete(self) -> bool:
        return all((self.court_id, self.booking_date, self.start_time, self.end_time))


class BookingWindow(NamedTuple):
    booking_date: date_type
    start_time: str
    end_time: str


@dataclass
class RescheduleRequest:
    """Partial reschedule payload. Unset fields keep the booking's current value."""
    booking_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def changes_time(self) -> bool:
        return bool(self.start_time or self.end_time)

    def merge(self, booking: Booking) -> BookingWindow:
        return BookingWindow(
            booking_date=parse_date(self.booking_date) if self.booking_date else booking.booking_date,
            start_time=normalize_time(self.start_time) if self.start_time else booking.start_time,
            end_time=normalize_time(self.end_time) if self.end_time else booking.end_time,
        )


# ── Queries ───────────────────────────────────────────────────────────────────

def active_bookings(session, court_id: int, booking_date: date_type, exclude_booking_id=None) -> list:
    """Bookings occupying the court on that exact date (not CANCELLED/REJECTED)."""
    q = session.query(Booking).filter(
        Booking.court_id == court_id,
        Booking.booking_date == booking_date,
        Booking.status.notin_(BookingStatus.INACTIVE),
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.all()


def compute_availability(session, court: Court, booking_date: date_type) -> list:
    """
    Configured slots for the date's weekday that overlap no active booking,
    ordered by start time. A slot touched by a booking anywhere is dropped
    whole; slots are never split.
    """
    slots = (
        session.query(TimeSlot)
        .filter(
            TimeSlot.court_id == court.id,
            TimeSlot.day_of_week == day_of_week(booking_date),
            TimeSlot.is_available.is_(True),
        )
        .all()
    )
    if not slots:
        return []

    booked = [
        (parse_time(b.start_time), parse_time(b.end_time))
        for b in active_bookings(session, court.id, booking_date)
    ]

    free = [
        slot for slot in slots
        if not any(
            overlaps(parse_time(slot.start_time), parse_time(slot.end_time), b_start, b_end)
            for b_start, b_end in booked
        )
    ]
    free.sort(key=lambda s: parse_time(s.start_time))
    return free


def check_conflict(session, court_id: int, booking_date: date_type, start_time: str, end_time: str,
                   exclude_booking_id=None) -> None:
    """
    Raise InvalidTimeRange if end <= start, SlotConflict if [start, end)
    overlaps an active booking. Reads only.
    """
    start, end = parse_time(start_time), parse_time(end_time)
    if end <= start:
        raise InvalidTimeRange("End time must be after start time")

    for booking in active_bookings(session, court_id, booking_date, exclude_booking_id):
        if overlaps(start, end, parse_time(booking.start_time), parse_time(booking.end_time)):
            logger.info(
                "Conflict on court %s %s: %s-%s overlaps booking %s (%s-%s)",
                court_id, booking_date, start_time, end_time,
                booking.id, booking.start_time, booking.end_time,
            )
            raise SlotConflict()


def compute_price(court: Court, start_time: str, end_time: str) -> tuple[float, float]:
    """Returns (total_hours, total_price). 90 minutes at 500/h -> (1.5, 750.0)."""
    total_hours = (parse_time(end_time) - parse_time(start_time)) / 60
    if total_hours <= 0:
        raise InvalidTimeRange()
    # price is money and is rounded to cents; total_hours stays exact
    return total_hours, round(total_hours * court.price_per_hour, 2)


# ── Court-day write guard ─────────────────────────────────────────────────────

def _claim_court_day(session, court_id: int, booking_date: date_type) -> int:
    """Return the ledger version seen by this transaction, creating the row if needed."""
    ledger = (
        session.query(CourtDayLedger)
        .filter_by(court_id=court_id, booking_date=booking_date)
        .first()
    )
    if ledger is not None:
        return ledger.version

    session.add(CourtDayLedger(court_id=court_id, booking_date=booking_date, version=0))
    try:
        session.flush()
    except IntegrityError:
        # another transaction inserted the row first
        session.rollback()
        raise SlotConflict(_RACE_MESSAGE) from None
    return 0


def _advance_court_day(session, court_id: int, booking_date: date_type, seen_version: int) -> None:
    updated = (
        session.query(CourtDayLedger)
        .filter_by(court_id=court_id, booking_date=booking_date, version=seen_version)
        .update({CourtDayLedger.version: seen_version + 1})
    )
    if updated != 1:
        logger.warning("Concurrent write detected on court %s %s", court_id, booking_date)
        raise SlotConflict(_RACE_MESSAGE)


# ── Booking lifecycle ─────────────────────────────────────────────────────────

def create_booking(session, user_id: int, draft: BookingDraft) -> Booking:
    if not draft.is_complete():
        raise BookingValidationError("All fields are required: courtId, bookingDate, startTime, endTime")

    booking_date = parse_date(draft.booking_date)
    start_time = normalize_time(draft.start_time)
    end_time = normalize_time(draft.end_time)

    court = session.get(Court, _as_id(draft.court_id, "court id"))
    if court is None or not court.is_active:
        raise CourtUnavailable()

    total_hours, total_price = compute_price(court, start_time, end_time)

    try:
        seen_version = _claim_court_day(session, court.id, booking_date)
        check_conflict(session, court.id, booking_date, start_time, end_time)

        booking = Booking(
            user_id=user_id,
            court_id=court.id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            total_hours=total_hours,
            total_price=total_price,
            notes=draft.notes,
            status=BookingStatus.PENDING,
        )
        session.add(booking)
        _advance_court_day(session, court.id, booking_date, seen_version)
        session.commit()
    except BookingEngineError:
        session.rollback()
        raise

    logger.info(
        "Booking %s created by user %s: court %s %s %s-%s",
        booking.id, user_id, court.id, booking_date, start_time, end_time,
    )
    return booking


def _load_booking(session, booking_id) -> Booking:
    booking = session.get(Booking, _as_id(booking_id, "booking id"))
    if booking is None:
        raise BookingNotFound()
    return booking


def reschedule_booking(session, user_id: int, booking_id, changes: RescheduleRequest) -> Booking:
    booking = _load_booking(session, booking_id)
    if booking.user_id != user_id:
        raise ForbiddenOwnership("You can only reschedule your own bookings")
    if booking.status in BookingStatus.TERMINAL:
        raise InvalidStatusTransition("Cannot reschedule cancelled or completed booking")

    window = changes.merge(booking)

    total_hours, total_price = booking.total_hours, booking.total_price
    if changes.changes_time:
        total_hours, total_price = compute_price(booking.court, window.start_time, window.end_time)

    try:
        seen_version = _claim_court_day(session, booking.court_id, window.booking_date)
        check_conflict(
            session, booking.court_id, window.booking_date,
            window.start_time, window.end_time,
            exclude_booking_id=booking.id,
        )

        booking.booking_date = window.booking_date
        booking.start_time = window.start_time
        booking.end_time = window.end_time
        booking.total_hours = total_hours
        booking.total_price = total_price
        _advance_court_day(session, booking.court_id, window.booking_date, seen_version)
        session.commit()
    except BookingEngineError:
        session.rollback()
        raise

    logger.info(
        "Booking %s rescheduled to %s %s-%s",
        booking.id, window.booking_date, window.start_time, window.end_time,
    )
    return booking


def cancel_booking(session, user_id: int, booking_id) -> Booking:
    booking = _load_booking(session, booking_id)
    if booking.user_id != user_id:
        raise ForbiddenOwnership("You can only cancel your own bookings")
    if booking.status == BookingStatus.CANCELLED:
        raise InvalidStatusTransition("Booking is already cancelled")
    if booking.status == BookingStatus.COMPLETED:
        raise InvalidStatusTransition("Cannot cancel completed booking")

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = datetime.utcnow()
    session.commit()

    logger.info("Booking %s cancelled by user %s", booking.id, user_id)
    return booking


def get_booking_for_viewer(session, user_id: int, booking_id, is_admin: bool = False) -> Booking:
    """The customer who booked, the venue owner, or an admin may view a booking."""
    booking = _load_booking(session, booking_id)
    if is_admin or booking.user_id == user_id:
        return booking
    if booking.court.venue.owner_user_id == user_id:
        return booking
    raise ForbiddenOwnership()
