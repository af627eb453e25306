"""Appointment booking and lifecycle rules.

The engine holds no state between calls: every check re-reads the store, and
the provider's directory row is locked before the checks so that competing
bookings against one calendar are serialized by the database.
"""

import logging
import math
from collections.abc import Callable
from datetime import date, datetime, time, timezone

from medlink.models.appointment import Appointment
from medlink.scheduling.checkers import has_appointment_conflict, has_blocking_conflict, is_within_availability
from medlink.scheduling.errors import (
    CannotDeleteActiveError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    OutsideAvailabilityError,
    PastSlotError,
    ProviderNotFoundError,
    SchedulingError,
    SelfBookingDeniedError,
    SlotBlockedError,
    SlotTakenError,
)
from medlink.scheduling.schemas import (
    AppointmentFilters,
    AppointmentStatus,
    CreateAppointmentRequest,
    PaginationResponse,
    UpdateAppointmentRequest,
)
from medlink.scheduling.store import SchedulingStore
from medlink.scheduling.time_utils import add_minutes, now, parse_date, parse_time, to_instant

logger = logging.getLogger(__name__)

PROVIDER = 'provider'
REQUESTER = 'requester'

TRANSITIONS = {
    AppointmentStatus.pending: {AppointmentStatus.confirmed, AppointmentStatus.cancelled},
    AppointmentStatus.confirmed: {AppointmentStatus.completed, AppointmentStatus.cancelled},
    AppointmentStatus.cancelled: set(),
    AppointmentStatus.completed: set(),
}

TRANSITION_ACTORS = {
    AppointmentStatus.confirmed: {PROVIDER},
    AppointmentStatus.completed: {PROVIDER},
    AppointmentStatus.cancelled: {REQUESTER, PROVIDER},
}

DELETABLE_STATUSES = {AppointmentStatus.pending, AppointmentStatus.cancelled}
TERMINAL_STATUSES = {AppointmentStatus.cancelled, AppointmentStatus.completed}

Notifier = Callable[[str, str, Appointment], None]


def log_notification(recipient_id: str, event: str, appointment: Appointment) -> None:
    logger.info(
        'Notification due: %s for appointment %s to professional %s',
        event,
        appointment.id,
        recipient_id,
    )


def role_of(appointment: Appointment, actor_id: str) -> str | None:
    if actor_id == appointment.provider_id:
        return PROVIDER
    if actor_id == appointment.requester_id:
        return REQUESTER
    return None


def check_transition(current: AppointmentStatus, target: AppointmentStatus, role: str) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(f'An appointment cannot go from {current.value} to {target.value}.')

    if role not in TRANSITION_ACTORS[target]:
        if target is AppointmentStatus.confirmed:
            raise ForbiddenError('Only the professional providing the appointment can confirm it.')
        if target is AppointmentStatus.completed:
            raise ForbiddenError('Only the professional providing the appointment can mark it as completed.')
        raise ForbiddenError()


class SchedulingEngine:
    def __init__(
        self,
        store: SchedulingStore,
        clock: Callable[[], datetime] = now,
        notifier: Notifier = log_notification,
    ):
        self.store = store
        self.clock = clock
        self.notifier = notifier

    def _check_slot(
        self,
        provider_id: str,
        slot_date: date | str,
        slot_time: time | str,
        duration: int,
        exclude_appointment_id: str | None = None,
    ) -> None:
        start = to_instant(slot_date, slot_time)
        end = add_minutes(start, duration)

        if start <= self.clock():
            raise PastSlotError()

        if not is_within_availability(self.store, provider_id, slot_date, slot_time):
            raise OutsideAvailabilityError()

        if has_blocking_conflict(self.store, provider_id, start, end):
            raise SlotBlockedError()

        if has_appointment_conflict(self.store, provider_id, start, end, exclude_appointment_id):
            raise SlotTakenError()

    def _get_for_participant(
        self,
        appointment_id: str,
        actor_id: str,
        for_update: bool = False,
    ) -> tuple[Appointment, str]:
        appointment = self.store.get_appointment(appointment_id, for_update=for_update)
        if appointment is None:
            raise NotFoundError()

        role = role_of(appointment, actor_id)
        if role is None:
            raise ForbiddenError('You are not a participant in this appointment.')

        return appointment, role

    def create_appointment(self, requester_id: str, request: CreateAppointmentRequest) -> Appointment:
        if request.provider_id == requester_id:
            raise SelfBookingDeniedError()

        try:
            if self.store.get_professional(request.provider_id, for_update=True) is None:
                raise ProviderNotFoundError()

            self._check_slot(request.provider_id, request.appointment_date, request.appointment_time, request.duration)
        except SchedulingError as exc:
            self.store.rollback()
            logger.info('Booking with %s rejected: %s', request.provider_id, exc.kind)
            raise

        appointment = Appointment(
            requester_id=requester_id,
            provider_id=request.provider_id,
            patient_first_name=request.patient_first_name,
            patient_last_name=request.patient_last_name,
            patient_phone=request.patient_phone,
            reason=request.reason,
            appointment_date=parse_date(request.appointment_date),
            appointment_time=parse_time(request.appointment_time),
            duration=request.duration,
            notes=request.notes,
            status=AppointmentStatus.pending.value,
        )
        appointment = self.store.insert(appointment)

        logger.info(
            'Appointment %s booked with %s on %s at %s',
            appointment.id,
            appointment.provider_id,
            appointment.appointment_date,
            appointment.appointment_time,
        )
        self.notifier(appointment.provider_id, 'appointment_requested', appointment)
        return appointment

    def update_appointment(
        self,
        appointment_id: str,
        actor_id: str,
        patch: UpdateAppointmentRequest,
    ) -> Appointment:
        try:
            # The row stays locked until commit so concurrent status changes see each other.
            appointment, role = self._get_for_participant(appointment_id, actor_id, for_update=True)
            current_status = AppointmentStatus(appointment.status)

            if current_status in TERMINAL_STATUSES:
                raise InvalidTransitionError(f'A {current_status.value} appointment can no longer be changed.')

            # An explicit null clears the notes; for every other field it means "unchanged".
            changes = {
                field: value
                for field, value in patch.model_dump(exclude_unset=True).items()
                if value is not None or field == 'notes'
            }

            target_status = changes.pop('status', None)
            if target_status is not None and target_status != current_status:
                check_transition(current_status, target_status, role)
            else:
                target_status = None

            new_date = parse_date(changes.pop('appointment_date', appointment.appointment_date))
            new_time = parse_time(changes.pop('appointment_time', appointment.appointment_time))
            new_duration = changes.pop('duration', appointment.duration)
            slot_changed = (
                new_date != appointment.appointment_date
                or new_time != appointment.appointment_time
                or new_duration != appointment.duration
            )

            if slot_changed:
                if current_status is not AppointmentStatus.pending:
                    raise InvalidTransitionError('Only pending appointments can be rescheduled.')

                self.store.get_professional(appointment.provider_id, for_update=True)
                self._check_slot(
                    appointment.provider_id,
                    new_date,
                    new_time,
                    new_duration,
                    exclude_appointment_id=appointment.id,
                )
        except SchedulingError as exc:
            self.store.rollback()
            logger.info('Update of appointment %s rejected: %s', appointment_id, exc.kind)
            raise

        if target_status is not None:
            appointment.status = target_status.value
        appointment.appointment_date = new_date
        appointment.appointment_time = new_time
        appointment.duration = new_duration
        for field, value in changes.items():
            setattr(appointment, field, value)
        appointment.updated_at = datetime.now(timezone.utc)

        appointment = self.store.update(appointment)

        if target_status is not None:
            logger.info('Appointment %s is now %s', appointment.id, appointment.status)
        other_party = appointment.requester_id if role == PROVIDER else appointment.provider_id
        self.notifier(other_party, 'appointment_updated', appointment)
        return appointment

    def delete_appointment(self, appointment_id: str, actor_id: str) -> None:
        try:
            appointment, _ = self._get_for_participant(appointment_id, actor_id, for_update=True)

            if AppointmentStatus(appointment.status) not in DELETABLE_STATUSES:
                raise CannotDeleteActiveError()
        except SchedulingError as exc:
            self.store.rollback()
            logger.info('Deletion of appointment %s rejected: %s', appointment_id, exc.kind)
            raise

        self.store.delete(appointment)
        logger.info('Appointment %s deleted by %s', appointment_id, actor_id)

    def get_appointment(self, appointment_id: str, actor_id: str) -> Appointment:
        appointment, _ = self._get_for_participant(appointment_id, actor_id)
        return appointment

    def list_appointments(
        self,
        actor_id: str,
        filters: AppointmentFilters,
    ) -> tuple[list[Appointment], PaginationResponse]:
        appointments, total = self.store.search_appointments(
            actor_id,
            status=filters.status.value if filters.status else None,
            requester_id=filters.requester_id,
            provider_id=filters.provider_id,
            date_from=filters.date_from,
            date_to=filters.date_to,
            offset=(filters.page - 1) * filters.limit,
            limit=filters.limit,
        )
        total_pages = math.ceil(total / filters.limit)

        return appointments, PaginationResponse(
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=total_pages,
            has_more=filters.page < total_pages,
        )
