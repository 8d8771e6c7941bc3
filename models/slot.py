from models.db import db

class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    court = db.relationship("Court", back_populates="time_slots")

    __table_args__ = (
        # Prevent duplicate slot windows for same court and weekday
        db.UniqueConstraint("court_id", "day_of_week", "start_time", "end_time", name="uq_court_weekday_window"),
    )
