"""
Error taxonomy.

ValidationError and NotFoundError are reported back to the caller as a failed
HandlerResult.  Everything else is absorbed inside the handler, logged, and
turned into a degraded-but-non-fatal outcome.
"""


class BookingError(Exception):
    """Base class for every error raised by the booking core."""

    code = "booking_error"


class ValidationError(BookingError):
    """Malformed input to a handler. No side effects have happened."""

    code = "validation_error"


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"


class NotFoundError(BookingError):
    code = "not_found"


class BookingNotFound(NotFoundError):
    code = "booking_not_found"


class AlreadyConfirmed(BookingError):
    """An availability check was requested for a booking that is already confirmed."""

    code = "already_confirmed"


class ExtractionFailure(BookingError):
    """The intent extractor was unavailable or returned unparseable output."""

    code = "extraction_failure"


class NotificationFailure(BookingError):
    code = "notification_failure"


class ConstraintError(BookingError):
    code = "constraint_error"


class DuplicateRefCode(ConstraintError):
    code = "duplicate_ref_code"


class ConcurrentUpdate(ConstraintError):
    """The booking changed since it was read (version mismatch)."""

    code = "concurrent_update"


class SafetyViolationPrevented(BookingError):
    """The follow-up was about to go to an operator or internal mailbox."""

    code = "safety_violation_prevented"
