from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medlink.auth.dependencies import get_current_professional
from medlink.database import ensure_appointment_schema, ensure_availability_schema, get_db
from medlink.models.professional import Professional
from medlink.scheduling.calendar_service import CalendarService
from medlink.scheduling.errors import SchedulingError, as_http_exception
from medlink.scheduling.schemas import (
    AvailabilityRuleResponse,
    BlockedSlotResponse,
    CreateBlockedSlotRequest,
    ReplaceAvailabilityRequest,
)
from medlink.scheduling.store import SchedulingStore

router = APIRouter(tags=['availability'])


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    return CalendarService(SchedulingStore(db))


@router.get('/{professional_id}/availabilities', response_model=list[AvailabilityRuleResponse])
def list_availabilities(
    professional_id: str,
    calendar: CalendarService = Depends(get_calendar_service),
):
    ensure_database_ready()

    try:
        return calendar.list_availability(professional_id)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.put('/{professional_id}/availabilities', response_model=list[AvailabilityRuleResponse])
def replace_availabilities(
    professional_id: str,
    data: ReplaceAvailabilityRequest,
    calendar: CalendarService = Depends(get_calendar_service),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        return calendar.replace_availability(current_professional.id, professional_id, data.availabilities)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.get('/{professional_id}/blocked-slots', response_model=list[BlockedSlotResponse])
def list_blocked_slots(
    professional_id: str,
    window_start: datetime | None = Query(default=None, alias='from'),
    window_end: datetime | None = Query(default=None, alias='to'),
    calendar: CalendarService = Depends(get_calendar_service),
):
    ensure_database_ready()

    try:
        return calendar.list_blocked_intervals(professional_id, window_start, window_end)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.post(
    '/{professional_id}/blocked-slots',
    response_model=BlockedSlotResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_blocked_slot(
    professional_id: str,
    data: CreateBlockedSlotRequest,
    calendar: CalendarService = Depends(get_calendar_service),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        return calendar.create_blocked_interval(current_professional.id, professional_id, data)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.delete('/{professional_id}/blocked-slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_blocked_slot(
    professional_id: str,
    slot_id: int,
    calendar: CalendarService = Depends(get_calendar_service),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        calendar.delete_blocked_interval(current_professional.id, professional_id, slot_id)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc
