from datetime import datetime
from models.db import db


class BookingStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    ALL = (PENDING, CONFIRMED, COMPLETED, CANCELLED, REJECTED)
    # bookings in these states no longer occupy the court
    INACTIVE = (CANCELLED, REJECTED)
    # no status or time change is allowed from these
    TERMINAL = (CANCELLED, COMPLETED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)

    booking_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)

    total_hours = db.Column(db.Float, nullable=False)
    total_price = db.Column(db.Float, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=BookingStatus.PENDING)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User")
    court = db.relationship("Court")

    @property
    def is_active(self):
        return self.status not in BookingStatus.INACTIVE


class CourtDayLedger(db.Model):
    """Write guard for one court on one calendar day.

    Every booking write that lands on (court_id, booking_date) advances
    ``version`` with a compare-and-set update, so two transactions that both
    passed the overlap check cannot both commit.
    """
    __tablename__ = "court_day_ledgers"

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False)
    booking_date = db.Column(db.Date, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("court_id", "booking_date", name="uq_court_day_ledger"),
    )
