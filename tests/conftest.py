from datetime import date

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.court import Court
from models.slot import TimeSlot
from models.user import User
from models.venue import Venue
from security.password import hash_password
from services.booking_engine import BookingDraft, create_booking
from utils.seed import get_role

# 2030-01-07 is a Monday (day_of_week 1); 2030-01-06 is a Sunday (0)
MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)
PASSWORD = "correct-horse"

HOURLY_SLOTS = [
    ("06:00", "07:00"),
    ("07:00", "08:00"),
    ("08:00", "09:00"),
    ("09:00", "10:00"),
    ("10:00", "11:00"),
]


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make(email="player@example.com", role="CUSTOMER", full_name="Test Player", phone_number=None):
        user = User(
            email=email,
            full_name=full_name,
            phone_number=phone_number,
            password_hash=hash_password(PASSWORD),
        )
        user.roles.append(get_role(role))
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture()
def customer(make_user):
    return make_user()


@pytest.fixture()
def other_customer(make_user):
    return make_user("rival@example.com", full_name="Rival Player")


@pytest.fixture()
def owner(make_user):
    return make_user("owner@example.com", role="VENUE_OWNER", full_name="Venue Owner")


@pytest.fixture()
def make_venue(owner):
    def _make(name="Dhuku Futsal", city="Kathmandu", address="Baneshwor", rating=4.5, is_active=True, user=None):
        venue = Venue(
            owner_user_id=(user or owner).id,
            name=name,
            address=address,
            city=city,
            rating=rating,
            images=[],
            is_active=is_active,
        )
        db.session.add(venue)
        db.session.commit()
        return venue
    return _make


@pytest.fixture()
def make_court():
    def _make(venue, name="Court A", price_per_hour=500, court_type="5A_SIDE", slots=HOURLY_SLOTS, weekday=1):
        court = Court(venue_id=venue.id, name=name, court_type=court_type, price_per_hour=price_per_hour)
        db.session.add(court)
        db.session.flush()
        for start, end in slots:
            db.session.add(TimeSlot(court_id=court.id, day_of_week=weekday, start_time=start, end_time=end))
        db.session.commit()
        return court
    return _make


@pytest.fixture()
def venue(make_venue):
    return make_venue()


@pytest.fixture()
def court(venue, make_court):
    return make_court(venue)


@pytest.fixture()
def book(customer):
    """Create a booking straight through the engine."""
    def _book(court, start, end, on=MONDAY, user=None):
        draft = BookingDraft(court_id=court.id, booking_date=on.isoformat(), start_time=start, end_time=end)
        return create_booking(db.session, (user or customer).id, draft)
    return _book


@pytest.fixture()
def login(client):
    def _login(email, password=PASSWORD):
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        token = resp.get_json()["data"]["auth"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}
    return _login
