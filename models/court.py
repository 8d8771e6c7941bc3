from datetime import datetime
from models.db import db

class Court(db.Model):
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    court_type = db.Column(db.String(40), nullable=True)     # e.g. 5A_SIDE, 7A_SIDE
    surface_type = db.Column(db.String(40), nullable=True)   # e.g. TURF, WOODEN
    is_indoor = db.Column(db.Boolean, default=False, nullable=False)

    price_per_hour = db.Column(db.Float, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    venue = db.relationship("Venue", back_populates="courts")
    time_slots = db.relationship("TimeSlot", back_populates="court", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("venue_id", "name", name="uq_courts_venue_name"),
    )
