from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .venue import Venue
from .court import Court
from .slot import TimeSlot
from .booking import Booking, BookingStatus, CourtDayLedger
from .review import Review
from .password_reset_token import PasswordResetToken
