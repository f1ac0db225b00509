"""
Error taxonomy for the booking and billing services.

Every error carries a stable machine-readable ``kind`` and the HTTP status the
API layer answers with. Validation errors are raised before the store is
touched, conflict and state errors after a read but before any mutation.
"""


class RentError(Exception):
    """Base class for every error the booking services report to callers."""

    kind = 'INTERNAL'
    status_code = 500
    default_message = 'Internal error'

    def __init__(self, message=None, kind=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if kind is not None:
            self.kind = kind

    def to_dict(self):
        return {'kind': self.kind, 'message': self.message}


class ValidationError(RentError):
    kind = 'VALIDATION'
    status_code = 400
    default_message = 'Invalid input'


class InvalidTimeError(ValidationError):
    kind = 'INVALID_TIME'
    default_message = 'Invalid time'


class NotFoundError(RentError):
    kind = 'NOT_FOUND'
    status_code = 404
    default_message = 'Not found'


class ForbiddenError(RentError):
    kind = 'FORBIDDEN'
    status_code = 403
    default_message = 'Not authorized'


class ConflictError(RentError):
    """The request collides with existing rentals or the offer calendar."""

    kind = 'TIME_OVERLAP'
    status_code = 409
    default_message = 'Conflicting rental'


class StateError(RentError):
    """The rental is in the wrong state for the requested transition."""

    kind = 'INVALID_STATUS'
    status_code = 409
    default_message = 'Invalid rental status'


class PricingError(RentError):
    kind = 'INVALID_PRICING'
    status_code = 422
    default_message = 'Invalid pricing configuration'


class InternalError(RentError):
    pass
