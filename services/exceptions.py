"""
Errors raised by the booking engine.
Raised in booking_engine.py and turned into JSON responses by the handler
registered in app.py.
"""


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""
    status_code = 400
    default_message = "Booking request could not be processed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BookingValidationError(BookingEngineError):
    """Raised when a required field is missing or malformed."""
    default_message = "Invalid booking request"


class InvalidTimeRange(BookingEngineError):
    """Raised when the end time is not after the start time."""
    default_message = "Invalid time range"


class SlotConflict(BookingEngineError):
    """Raised when the window overlaps an active booking on the same court and date."""
    status_code = 409
    default_message = "Time slot is already booked"


class CourtUnavailable(BookingEngineError):
    """Raised when the court does not exist or is inactive."""
    status_code = 404
    default_message = "Court not found or inactive"


class BookingNotFound(BookingEngineError):
    status_code = 404
    default_message = "Booking not found"


class ForbiddenOwnership(BookingEngineError):
    """Raised when the acting user does not own the booking."""
    status_code = 403
    default_message = "Access denied"


class InvalidStatusTransition(BookingEngineError):
    """Raised when cancelling or rescheduling a CANCELLED or COMPLETED booking."""
    default_message = "Booking status does not allow this change"
