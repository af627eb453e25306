from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from medlink.auth.dependencies import get_current_professional
from medlink.core import config
from medlink.database import get_db
from medlink.models.professional import Professional
from medlink.routes.availability_routes import ensure_database_ready
from medlink.scheduling.engine import SchedulingEngine
from medlink.scheduling.errors import SchedulingError, as_http_exception
from medlink.scheduling.schemas import (
    MAX_PAGE_SIZE,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    CreateAppointmentRequest,
    UpdateAppointmentRequest,
)
from medlink.scheduling.store import SchedulingStore

router = APIRouter(tags=['appointments'])


def get_scheduling_engine(db: Session = Depends(get_db)) -> SchedulingEngine:
    return SchedulingEngine(SchedulingStore(db))


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    requester_id: str | None = Query(default=None),
    provider_id: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.APPOINTMENT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    filters = AppointmentFilters(
        status=appointment_status,
        requester_id=requester_id,
        provider_id=provider_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )

    try:
        appointments, pagination = engine.list_appointments(current_professional.id, filters)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc

    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
        pagination=pagination,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        return engine.create_appointment(current_professional.id, data)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        return engine.get_appointment(appointment_id, current_professional.id)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        return engine.update_appointment(appointment_id, current_professional.id, data)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
    current_professional: Professional = Depends(get_current_professional),
):
    ensure_database_ready()

    try:
        engine.delete_appointment(appointment_id, current_professional.id)
    except SchedulingError as exc:
        raise as_http_exception(exc) from exc
