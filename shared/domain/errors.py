"""
Domain Errors

Every failure a booking or calendar operation can report derives from
BookingError. Each error carries a stable machine readable ``code`` and the
HTTP status the API layer renders it with, so callers can branch on the type
while clients branch on the code.
"""

from typing import Any, Iterable, Optional


class BookingError(Exception):
    """Root of the booking error taxonomy"""

    status_code = 400
    code = 'booking_error'
    default_detail = 'The booking operation failed.'

    def __init__(self, detail: Optional[str] = None, **extra: Any):
        self.detail = detail or self.default_detail
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {'code': self.code, 'detail': self.detail, **self.extra}


class InvalidRange(BookingError):
    """Start is not strictly before end"""

    status_code = 400
    code = 'invalid_range'
    default_detail = 'Start must be strictly before end.'


class Unavailable(BookingError):
    """The requested interval collides with local or remote commitments"""

    status_code = 409
    code = 'unavailable'
    default_detail = 'The resource is not available for the requested period.'

    def __init__(self, reason: str, conflicts: Iterable = (), detail: Optional[str] = None):
        self.reason = reason
        self.conflicts = list(conflicts)
        super().__init__(detail or f"{self.default_detail} ({reason})")

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'detail': self.detail,
            'reason': self.reason,
            'conflicts': [
                conflict.to_dict() if hasattr(conflict, 'to_dict') else conflict
                for conflict in self.conflicts
            ],
        }


class PaidBookingLocked(BookingError):
    """Paid bookings cannot be rescheduled or cancelled without an override"""

    status_code = 423
    code = 'paid_booking_locked'
    default_detail = 'This booking has been paid and is locked.'


class NotFound(BookingError):
    status_code = 404
    code = 'not_found'
    default_detail = 'The requested record does not exist.'


class InvalidTransition(BookingError):
    """Status change not allowed from the booking's current status"""

    status_code = 409
    code = 'invalid_transition'
    default_detail = 'The booking cannot move to the requested status.'


class AuthRequired(BookingError):
    """No usable calendar credential; the owner has to connect the calendar"""

    status_code = 401
    code = 'auth_required'
    default_detail = 'Calendar authorization is required.'

    def to_dict(self) -> dict:
        return {**super().to_dict(), 'requires_auth': True}


class ReauthRequired(AuthRequired):
    """The stored credential was revoked or expired and has been discarded"""

    code = 'reauth_required'
    default_detail = 'Calendar authorization expired. Please reconnect the calendar.'

    def to_dict(self) -> dict:
        return {**super().to_dict(), 'requires_reauth': True}


class UpstreamUnavailable(BookingError):
    """The calendar provider failed, timed out, or throttled the request"""

    status_code = 502
    code = 'upstream_unavailable'
    default_detail = 'The calendar provider is unavailable.'


class CalendarNotLinked(BookingError):
    status_code = 409
    code = 'calendar_not_linked'
    default_detail = 'This resource has no linked calendar.'


class ReconcileInProgress(BookingError):
    status_code = 409
    code = 'reconcile_in_progress'
    default_detail = 'A reconciliation for this resource is already running.'
