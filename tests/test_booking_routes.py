"""HTTP-level tests for /api/v1/bookings."""

from sqlalchemy.exc import OperationalError

from models import db
from models.audit_log import AuditLog
from models.booking import Booking, BookingStatus
from services import booking_engine

AVAILABILITY = "/api/v1/bookings/availability/{venue_id}"


def _create(client, headers, court, start, end, date="2030-01-07", **extra):
    body = {"courtId": court.id, "bookingDate": date, "startTime": start, "endTime": end}
    body.update(extra)
    return client.post("/api/v1/bookings/create", json=body, headers=headers)


def test_availability_lists_free_slots_per_court(client, venue, court, book):
    book(court, "08:00", "10:00")

    resp = client.get(AVAILABILITY.format(venue_id=venue.id), query_string={"date": "2030-01-07"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["success"] is True
    assert body["dayOfWeek"] == 1
    assert body["data"][0]["courtId"] == court.id
    assert body["data"][0]["pricePerHour"] == 500
    assert body["data"][0]["availableSlots"] == [
        {"startTime": "06:00", "endTime": "07:00"},
        {"startTime": "07:00", "endTime": "08:00"},
        {"startTime": "10:00", "endTime": "11:00"},
    ]


def test_availability_on_day_without_slots_is_empty(client, venue, court):
    resp = client.get(AVAILABILITY.format(venue_id=venue.id), query_string={"date": "2030-01-06"})
    assert resp.status_code == 200
    assert resp.get_json()["data"][0]["availableSlots"] == []


def test_availability_requires_a_valid_date(client, venue, court):
    resp = client.get(AVAILABILITY.format(venue_id=venue.id))
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": "Date parameter is required"}

    resp = client.get(AVAILABILITY.format(venue_id=venue.id), query_string={"date": "soon"})
    assert resp.status_code == 400


def test_availability_unknown_venue(client):
    resp = client.get(AVAILABILITY.format(venue_id=999), query_string={"date": "2030-01-07"})
    assert resp.status_code == 404


def test_create_booking_over_http(client, court, customer, login):
    headers = login(customer.email)
    resp = _create(client, headers, court, "08:00", "09:30", notes="friendly match")
    body = resp.get_json()

    assert resp.status_code == 201
    assert body["success"] is True
    assert body["data"]["status"] == "PENDING"
    assert body["data"]["totalHours"] == 1.5
    assert body["data"]["totalPrice"] == 750
    assert body["data"]["court"]["venue"]["name"] == "Dhuku Futsal"
    assert AuditLog.query.filter_by(action="BOOKING_CREATE").count() == 1


def test_create_conflict_and_boundary(client, court, customer, login):
    headers = login(customer.email)
    assert _create(client, headers, court, "08:00", "10:00").status_code == 201

    resp = _create(client, headers, court, "09:00", "11:00")
    assert resp.status_code == 409
    assert resp.get_json() == {"success": False, "message": "Time slot is already booked"}
    assert AuditLog.query.filter_by(action="BOOKING_FAIL_ALREADY_BOOKED").count() == 1

    assert _create(client, headers, court, "10:00", "11:00").status_code == 201


def test_create_requires_login(app, court):
    resp = app.test_client().post("/api/v1/bookings/create", json={"courtId": court.id})
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_create_validation_errors(client, court, customer, login):
    headers = login(customer.email)

    resp = client.post("/api/v1/bookings/create", json={"courtId": court.id}, headers=headers)
    assert resp.status_code == 400
    assert "required" in resp.get_json()["message"]

    assert _create(client, headers, court, "10:00", "09:00").status_code == 400
    assert _create(client, headers, court, "9am", "10am").status_code == 400


def test_create_on_inactive_court(client, court, customer, login):
    court.is_active = False
    db.session.commit()

    resp = _create(client, login(customer.email), court, "08:00", "09:00")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Court not found or inactive"


def test_database_failure_is_generic_500(client, court, customer, login, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(booking_engine, "create_booking", boom)
    resp = _create(client, login(customer.email), court, "08:00", "09:00")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}


def test_my_bookings_lists_only_own(client, court, book, customer, other_customer, login):
    book(court, "08:00", "09:00")
    book(court, "09:00", "10:00", user=other_customer)

    resp = client.get("/api/v1/bookings/my", headers=login(customer.email))
    body = resp.get_json()
    assert body["count"] == 1
    assert body["data"][0]["userId"] == customer.id


def test_get_booking_access_rules(client, court, book, customer, owner, other_customer, login):
    booking = book(court, "08:00", "09:00")
    url = f"/api/v1/bookings/{booking.id}"

    assert client.get(url, headers=login(customer.email)).status_code == 200
    assert client.get(url, headers=login(owner.email)).status_code == 200
    resp = client.get(url, headers=login(other_customer.email))
    assert resp.status_code == 403
    assert client.get("/api/v1/bookings/9999", headers=login(customer.email)).status_code == 404


def test_cancel_then_cancel_again(client, court, book, customer, login):
    booking = book(court, "08:00", "09:00")
    headers = login(customer.email)

    resp = client.put(f"/api/v1/bookings/cancel/{booking.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "CANCELLED"

    resp = client.put(f"/api/v1/bookings/cancel/{booking.id}", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Booking is already cancelled"


def test_cancel_completed_over_http(client, court, book, customer, login):
    booking = book(court, "08:00", "09:00")
    booking.status = BookingStatus.COMPLETED
    db.session.commit()

    resp = client.put(f"/api/v1/bookings/cancel/{booking.id}", headers=login(customer.email))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot cancel completed booking"


def test_cancel_someone_elses_booking(client, court, book, other_customer, login):
    booking = book(court, "08:00", "09:00")
    resp = client.put(f"/api/v1/bookings/cancel/{booking.id}", headers=login(other_customer.email))
    assert resp.status_code == 403
    assert db.session.get(Booking, booking.id).status == BookingStatus.PENDING


def test_reschedule_over_http(client, court, book, customer, other_customer, login):
    book(court, "10:00", "11:00", user=other_customer)
    booking = book(court, "08:00", "09:00")
    headers = login(customer.email)
    url = f"/api/v1/bookings/reschedule/{booking.id}"

    resp = client.put(url, json={"startTime": "08:00", "endTime": "10:00"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["totalPrice"] == 1000

    resp = client.put(url, json={"endTime": "10:30"}, headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "New time slot is already booked"

    resp = client.put(url, json={"bookingDate": "2030-01-14"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["bookingDate"] == "2030-01-14"
    assert AuditLog.query.filter_by(action="BOOKING_RESCHEDULE").count() == 2


def test_non_string_notes_is_a_bad_request(client, court, customer, login):
    resp = _create(client, login(customer.email), court, "08:00", "09:00", notes=5)

    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": "notes must be a string"}
    assert Booking.query.count() == 0


def test_unexpected_error_is_generic_json_500(client, court, customer, login, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("ledger exploded")

    monkeypatch.setattr(booking_engine, "create_booking", boom)
    resp = _create(client, login(customer.email), court, "08:00", "09:00")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}
