"""Failures raised by the scheduling engine.

Each error carries a stable ``kind`` callers can branch on, a human-readable
``message`` and the HTTP status the routes answer with.
"""

from fastapi import HTTPException, status


class SchedulingError(Exception):
    kind = 'SchedulingError'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'The request could not be processed.'

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidTimeFormatError(SchedulingError):
    kind = 'InvalidTimeFormat'
    status_code = 422
    message = 'Dates must use YYYY-MM-DD and times must use HH:MM.'


class SelfBookingDeniedError(SchedulingError):
    kind = 'SelfBookingDenied'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'You cannot book an appointment with yourself.'


class ProviderNotFoundError(SchedulingError):
    kind = 'ProviderNotFound'
    status_code = status.HTTP_404_NOT_FOUND
    message = 'Professional not found.'


class PastSlotError(SchedulingError):
    kind = 'PastSlot'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'Appointments must be scheduled in the future.'


class OutsideAvailabilityError(SchedulingError):
    kind = 'OutsideAvailability'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'The professional is not available at this time.'


class SlotBlockedError(SchedulingError):
    kind = 'SlotBlocked'
    status_code = status.HTTP_409_CONFLICT
    message = 'This time is blocked.'


class SlotTakenError(SchedulingError):
    kind = 'SlotTaken'
    status_code = status.HTTP_409_CONFLICT
    message = 'The professional already has an appointment at this time.'


class NotFoundError(SchedulingError):
    kind = 'NotFound'
    status_code = status.HTTP_404_NOT_FOUND
    message = 'Appointment not found.'


class ForbiddenError(SchedulingError):
    kind = 'Forbidden'
    status_code = status.HTTP_403_FORBIDDEN
    message = 'You are not allowed to perform this action.'


class InvalidTransitionError(SchedulingError):
    kind = 'InvalidTransition'
    status_code = status.HTTP_409_CONFLICT
    message = 'This status change is not allowed.'


class CannotDeleteActiveError(SchedulingError):
    kind = 'CannotDeleteActive'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'Confirmed or completed appointments cannot be deleted.'


class InvalidRequestError(SchedulingError):
    kind = 'ValidationError'
    status_code = 422
    message = 'Invalid request.'


class StoreUnavailableError(SchedulingError):
    kind = 'StoreUnavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def as_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
