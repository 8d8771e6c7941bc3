from collections import defaultdict

from flask import Blueprint, request, jsonify, g
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from models import db
from models.court import Court
from models.review import Review
from models.slot import TimeSlot
from models.venue import Venue
from security.rbac import require_roles, has_role
from services.booking_engine import normalize_time, parse_time
from services.exceptions import InvalidTimeRange
from utils.audit import log_event
from utils.payload import text_field

venue_bp = Blueprint("venue", __name__, url_prefix="/api/v1/futsal")


def _parse_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _owner_json(user, with_email=True):
    out = {"id": user.id, "fullName": user.full_name, "phoneNumber": user.phone_number}
    if with_email:
        out["email"] = user.email
    return out


def court_json(court: Court) -> dict:
    return {
        "id": court.id,
        "name": court.name,
        "courtType": court.court_type,
        "surfaceType": court.surface_type,
        "isIndoor": court.is_indoor,
        "pricePerHour": court.price_per_hour,
    }


def slot_json(slot: TimeSlot) -> dict:
    return {
        "id": slot.id,
        "dayOfWeek": slot.day_of_week,
        "startTime": slot.start_time,
        "endTime": slot.end_time,
        "isAvailable": slot.is_available,
    }


def venue_json(venue: Venue, courts) -> dict:
    return {
        "id": venue.id,
        "name": venue.name,
        "description": venue.description,
        "address": venue.address,
        "city": venue.city,
        "phoneNumber": venue.phone_number,
        "images": venue.images or [],
        "rating": venue.rating,
        "createdAt": venue.created_at.isoformat(),
        "courts": courts,
    }


def _active_courts_by_venue(venue_ids, max_price=None, court_type=None):
    if not venue_ids:
        return {}
    q = Court.query.filter(Court.venue_id.in_(venue_ids), Court.is_active.is_(True))
    if max_price is not None:
        q = q.filter(Court.price_per_hour <= max_price)
    if court_type:
        q = q.filter(Court.court_type.ilike(f"%{court_type}%"))

    grouped = defaultdict(list)
    for court in q.order_by(Court.id.asc()).all():
        grouped[court.venue_id].append(court)
    return grouped


def _can_manage(venue: Venue) -> bool:
    return venue.owner_user_id == g.user.id or has_role("ADMIN")


@venue_bp.get("")
def list_venues():
    venues = (
        Venue.query
        .filter(Venue.is_active.is_(True))
        .order_by(Venue.rating.desc())
        .all()
    )
    courts = _active_courts_by_venue([v.id for v in venues])

    data = []
    for v in venues:
        row = venue_json(v, [court_json(c) for c in courts.get(v.id, [])])
        row["owner"] = _owner_json(v.owner)
        data.append(row)
    return jsonify(success=True, count=len(data), data=data), 200


@venue_bp.get("/search-venue")
def search_venues():
    location = (request.args.get("location") or "").strip()
    price = (request.args.get("price") or "").strip()
    city = (request.args.get("city") or "").strip()
    court_type = (request.args.get("courtType") or "").strip()
    min_rating = (request.args.get("minRating") or "").strip()

    q = Venue.query.filter(Venue.is_active.is_(True))

    # location matches either the street address or the city
    if location:
        like = f"%{location}%"
        q = q.filter(or_(Venue.address.ilike(like), Venue.city.ilike(like)))
    if city:
        q = q.filter(Venue.city.ilike(f"%{city}%"))
    rating = _parse_float(min_rating)
    if rating is not None:
        q = q.filter(Venue.rating >= rating)

    venues = q.order_by(Venue.rating.desc()).all()
    courts = _active_courts_by_venue(
        [v.id for v in venues],
        max_price=_parse_float(price),
        court_type=court_type or None,
    )

    # With court filters, venues left without a matching court drop out
    if price or court_type:
        venues = [v for v in venues if courts.get(v.id)]

    data = []
    for v in venues:
        row = venue_json(v, [court_json(c) for c in courts.get(v.id, [])])
        row["owner"] = _owner_json(v.owner, with_email=False)
        data.append(row)

    return jsonify(
        success=True,
        count=len(data),
        filters={
            "location": location or None,
            "price": price or None,
            "city": city or None,
            "courtType": court_type or None,
            "minRating": min_rating or None,
        },
        data=data,
    ), 200


@venue_bp.get("/<int:venue_id>")
def get_venue(venue_id: int):
    venue = db.session.get(Venue, venue_id)
    if not venue:
        return jsonify(success=False, message="Venue not found"), 404
    if not venue.is_active:
        return jsonify(success=False, message="Venue is not active"), 404

    courts = _active_courts_by_venue([venue.id]).get(venue.id, [])
    court_ids = [c.id for c in courts]
    slots = defaultdict(list)
    if court_ids:
        rows = (
            TimeSlot.query
            .filter(TimeSlot.court_id.in_(court_ids))
            .order_by(TimeSlot.day_of_week.asc(), TimeSlot.start_time.asc())
            .all()
        )
        for s in rows:
            slots[s.court_id].append(slot_json(s))

    reviews = (
        Review.query
        .filter_by(venue_id=venue.id)
        .order_by(Review.created_at.desc())
        .limit(10)
        .all()
    )

    data = venue_json(venue, [dict(court_json(c), timeSlots=slots[c.id]) for c in courts])
    data["owner"] = _owner_json(venue.owner)
    data["reviews"] = [
        {
            "id": r.id,
            "rating": r.rating,
            "comment": r.comment,
            "createdAt": r.created_at.isoformat(),
            "user": {"id": r.user.id, "fullName": r.user.full_name},
        }
        for r in reviews
    ]
    return jsonify(success=True, data=data), 200


# ---------- VENUE OWNER: manage venues, courts, time slots ----------
@venue_bp.post("")
@require_roles("VENUE_OWNER")
def create_venue():
    data = request.get_json(silent=True) or {}
    name = text_field(data, "name", "")
    address = text_field(data, "address", "")
    city = text_field(data, "city", "")
    images = data.get("images") or []

    if not name or not address or not city:
        return jsonify(success=False, message="name, address and city are required"), 400
    if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
        return jsonify(success=False, message="images must be a list of URLs"), 400

    venue = Venue(
        owner_user_id=g.user.id,
        name=name,
        address=address,
        city=city,
        description=text_field(data, "description") or None,
        phone_number=text_field(data, "phoneNumber") or None,
        images=images,
    )
    db.session.add(venue)
    db.session.commit()

    log_event("VENUE_CREATE", user_id=g.user.id, entity="venue", entity_id=venue.id)
    return jsonify(success=True, message="Venue created", data=venue_json(venue, [])), 201


@venue_bp.post("/<int:venue_id>/courts")
@require_roles("VENUE_OWNER")
def create_court(venue_id: int):
    venue = db.session.get(Venue, venue_id)
    if not venue:
        return jsonify(success=False, message="Venue not found"), 404
    if not _can_manage(venue):
        return jsonify(success=False, message="Forbidden"), 403

    data = request.get_json(silent=True) or {}
    name = text_field(data, "name", "")
    price_per_hour = _parse_float(data.get("pricePerHour"))
    if not name:
        return jsonify(success=False, message="Court name required"), 400
    if price_per_hour is None or price_per_hour <= 0:
        return jsonify(success=False, message="pricePerHour must be a positive number"), 400

    court = Court(
        venue_id=venue.id,
        name=name,
        court_type=text_field(data, "courtType") or None,
        surface_type=text_field(data, "surfaceType") or None,
        is_indoor=bool(data.get("isIndoor", False)),
        price_per_hour=price_per_hour,
    )
    db.session.add(court)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(success=False, message="Court name already exists for this venue"), 409

    log_event("COURT_CREATE", user_id=g.user.id, entity="court", entity_id=court.id)
    return jsonify(success=True, message="Court created", data=court_json(court)), 201


@venue_bp.post("/courts/<int:court_id>/time-slots")
@require_roles("VENUE_OWNER")
def create_time_slot(court_id: int):
    court = db.session.get(Court, court_id)
    if not court:
        return jsonify(success=False, message="Court not found"), 404
    if not _can_manage(court.venue):
        return jsonify(success=False, message="Forbidden"), 403

    data = request.get_json(silent=True) or {}
    day = data.get("dayOfWeek")
    if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
        return jsonify(success=False, message="dayOfWeek must be 0 (Sunday) to 6 (Saturday)"), 400

    start_time = normalize_time(data.get("startTime"))
    end_time = normalize_time(data.get("endTime"))
    if parse_time(end_time) <= parse_time(start_time):
        raise InvalidTimeRange("endTime must be after startTime")

    slot = TimeSlot(
        court_id=court.id,
        day_of_week=day,
        start_time=start_time,
        end_time=end_time,
        is_available=bool(data.get("isAvailable", True)),
    )
    db.session.add(slot)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(success=False, message="Time slot already exists for that court and day"), 409

    log_event("TIME_SLOT_CREATE", user_id=g.user.id, entity="time_slot", entity_id=slot.id)
    return jsonify(success=True, message="Time slot created", data=slot_json(slot)), 201
