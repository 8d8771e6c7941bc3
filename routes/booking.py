from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import Booking
from models.court import Court
from models.venue import Venue
from security.rbac import has_role
from services import booking_engine as engine
from services.exceptions import SlotConflict
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import text_field

booking_bp = Blueprint("booking", __name__, url_prefix="/api/v1/bookings")


def booking_json(b: Booking) -> dict:
    court = b.court
    venue = court.venue
    return {
        "id": b.id,
        "userId": b.user_id,
        "courtId": b.court_id,
        "bookingDate": b.booking_date.isoformat(),
        "startTime": b.start_time,
        "endTime": b.end_time,
        "totalHours": b.total_hours,
        "totalPrice": b.total_price,
        "status": b.status,
        "notes": b.notes,
        "createdAt": b.created_at.isoformat(),
        "updatedAt": b.updated_at.isoformat() if b.updated_at else None,
        "cancelledAt": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "court": {
            "id": court.id,
            "name": court.name,
            "courtType": court.court_type,
            "pricePerHour": court.price_per_hour,
            "venue": {
                "id": venue.id,
                "name": venue.name,
                "address": venue.address,
                "city": venue.city,
                "phoneNumber": venue.phone_number,
                "images": venue.images or [],
            },
        },
    }


# ---------- PUBLIC: free slots per court ----------
@booking_bp.get("/availability/<int:futsal_id>")
def check_availability(futsal_id: int):
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(success=False, message="Date parameter is required"), 400

    booking_date = engine.parse_date(date_str)

    venue = db.session.get(Venue, futsal_id)
    if not venue or not venue.is_active:
        return jsonify(success=False, message="Venue not found"), 404

    courts = (
        Court.query
        .filter(Court.venue_id == venue.id, Court.is_active.is_(True))
        .order_by(Court.id.asc())
        .all()
    )

    availability = []
    for court in courts:
        free = engine.compute_availability(db.session, court, booking_date)
        availability.append({
            "courtId": court.id,
            "courtName": court.name,
            "courtType": court.court_type,
            "pricePerHour": court.price_per_hour,
            "availableSlots": [
                {"startTime": s.start_time, "endTime": s.end_time} for s in free
            ],
        })

    return jsonify(
        success=True,
        date=booking_date.isoformat(),
        dayOfWeek=engine.day_of_week(booking_date),
        data=availability,
    ), 200


# ---------- CUSTOMERS: create / view / cancel / reschedule ----------
@booking_bp.post("/create")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    draft = engine.BookingDraft(
        court_id=data.get("courtId"),
        booking_date=data.get("bookingDate"),
        start_time=data.get("startTime"),
        end_time=data.get("endTime"),
        notes=text_field(data, "notes") or None,
    )

    try:
        booking = engine.create_booking(db.session, g.user.id, draft)
    except SlotConflict:
        log_event("BOOKING_FAIL_ALREADY_BOOKED", user_id=g.user.id, entity="court", entity_id=draft.court_id,
                  metadata={"date": draft.booking_date, "start": draft.start_time, "end": draft.end_time})
        raise

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"court_id": booking.court_id, "total_price": booking.total_price})
    return jsonify(success=True, message="Booking created successfully", data=booking_json(booking)), 201


@booking_bp.get("/my")
@login_required
def my_bookings():
    rows = (
        Booking.query
        .filter_by(user_id=g.user.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )
    return jsonify(success=True, count=len(rows), data=[booking_json(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = engine.get_booking_for_viewer(db.session, g.user.id, booking_id, is_admin=has_role("ADMIN"))
    return jsonify(success=True, data=booking_json(booking)), 200


@booking_bp.put("/cancel/<int:booking_id>")
@login_required
def cancel_booking(booking_id: int):
    booking = engine.cancel_booking(db.session, g.user.id, booking_id)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(success=True, message="Booking cancelled successfully", data=booking_json(booking)), 200


@booking_bp.put("/reschedule/<int:booking_id>")
@login_required
def reschedule_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    changes = engine.RescheduleRequest(
        booking_date=data.get("bookingDate") or None,
        start_time=data.get("startTime") or None,
        end_time=data.get("endTime") or None,
    )

    try:
        booking = engine.reschedule_booking(db.session, g.user.id, booking_id, changes)
    except SlotConflict as exc:
        log_event("BOOKING_FAIL_ALREADY_BOOKED", user_id=g.user.id, entity="booking", entity_id=booking_id)
        raise SlotConflict("New time slot is already booked") from exc

    log_event("BOOKING_RESCHEDULE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"date": booking.booking_date, "start": booking.start_time, "end": booking.end_time})
    return jsonify(success=True, message="Booking rescheduled successfully", data=booking_json(booking)), 200
