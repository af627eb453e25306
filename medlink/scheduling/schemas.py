from datetime import date, datetime, time
from enum import Enum

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from medlink.core import config
from medlink.scheduling.time_utils import DATE_PATTERN, TIME_PATTERN

PHONE_PATTERN = r'^(\+33|0)[1-9](\d{2}){4}$'
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
MAX_APPOINTMENT_NOTES_LENGTH = 500
MAX_BLOCKED_REASON_LENGTH = 200
MAX_PAGE_SIZE = 50


class AppointmentStatus(str, Enum):
    pending = 'pending'
    confirmed = 'confirmed'
    cancelled = 'cancelled'
    completed = 'completed'


def _validate_date(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not DATE_PATTERN.match(normalized):
        raise ValueError('Invalid date (YYYY-MM-DD).')
    try:
        date.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError('Invalid date (YYYY-MM-DD).') from exc
    return normalized


def _validate_time(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not TIME_PATTERN.match(normalized):
        raise ValueError('Invalid time (HH:MM).')
    return normalized


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    provider_id: str
    patient_first_name: str = Field(min_length=2)
    patient_last_name: str = Field(min_length=2)
    patient_phone: str = Field(pattern=PHONE_PATTERN)
    reason: str = Field(min_length=5)
    appointment_date: str
    appointment_time: str
    duration: int = Field(default=config.DEFAULT_APPOINTMENT_DURATION, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    notes: str | None = None

    @field_validator('provider_id')
    @classmethod
    def validate_provider_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Professional id is required.')
        return normalized

    @field_validator('patient_first_name', 'patient_last_name', 'reason', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator('patient_phone', mode='before')
    @classmethod
    def normalize_phone(cls, value):
        if isinstance(value, str):
            return ''.join(value.split())
        return value

    @field_validator('appointment_date')
    @classmethod
    def validate_appointment_date(cls, value: str) -> str:
        return _validate_date(value)

    @field_validator('appointment_time')
    @classmethod
    def validate_appointment_time(cls, value: str) -> str:
        return _validate_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(BaseModel):
    status: AppointmentStatus | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    duration: int | None = Field(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    notes: str | None = None
    reason: str | None = Field(default=None, min_length=5)

    @field_validator('appointment_date')
    @classmethod
    def validate_appointment_date(cls, value: str | None) -> str | None:
        return _validate_date(value)

    @field_validator('appointment_time')
    @classmethod
    def validate_appointment_time(cls, value: str | None) -> str | None:
        return _validate_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentResponse(BaseModel):
    id: str
    requester_id: str
    provider_id: str
    patient_first_name: str
    patient_last_name: str
    patient_phone: str
    reason: str
    appointment_date: date
    appointment_time: time
    duration: int
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    pagination: PaginationResponse


class AppointmentFilters(BaseModel):
    status: AppointmentStatus | None = None
    requester_id: str | None = None
    provider_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=config.APPOINTMENT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)


class AvailabilityRuleRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    is_active: bool = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_window_time(cls, value: str) -> str:
        return _validate_time(value)


class ReplaceAvailabilityRequest(BaseModel):
    availabilities: list[AvailabilityRuleRequest]


class AvailabilityRuleResponse(BaseModel):
    id: int
    professional_id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class CreateBlockedSlotRequest(BaseModel):
    # Blocked periods are absolute instants, so an explicit UTC offset is required.
    start_datetime: AwareDatetime
    end_datetime: AwareDatetime
    reason: str = Field(min_length=1, max_length=MAX_BLOCKED_REASON_LENGTH)

    @field_validator('reason', mode='before')
    @classmethod
    def strip_reason(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class BlockedSlotResponse(BaseModel):
    id: int
    professional_id: str
    start_datetime: datetime
    end_datetime: datetime
    reason: str | None = None

    class Config:
        from_attributes = True
