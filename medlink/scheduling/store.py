"""SQLAlchemy access to professionals, calendars and appointments.

Every query failure is rolled back and surfaced as ``StoreUnavailableError``.
At commit time, violations of the appointment overlap guards surface as
``SlotTakenError``; any other integrity violation is an invalid request.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from medlink.models.appointment import ACTIVE_STATUSES, Appointment
from medlink.models.availability import AvailabilityRule
from medlink.models.blocked_slot import BlockedSlot
from medlink.models.professional import Professional
from medlink.scheduling.errors import InvalidRequestError, StoreUnavailableError, SlotTakenError
from medlink.scheduling.time_utils import to_utc

logger = logging.getLogger(__name__)

SLOT_CONFLICT_MARKERS = (
    'uq_appointments_provider_active_start',
    'appointments_no_overlap',
    # SQLite reports the indexed columns instead of the index name.
    'appointments.provider_id, appointments.appointment_date, appointments.appointment_time',
)


def is_slot_conflict(exc: IntegrityError) -> bool:
    detail = str(exc.orig)
    return any(marker in detail for marker in SLOT_CONFLICT_MARKERS)


class SchedulingStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _reading(self):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error('Store read failed: %s', exc)
            raise StoreUnavailableError() from exc

    def commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info('Store rejected write: %s', exc.orig)
            if is_slot_conflict(exc):
                raise SlotTakenError() from exc
            raise InvalidRequestError('The change violates a data constraint.') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error('Store write failed: %s', exc)
            raise StoreUnavailableError() from exc

    def rollback(self) -> None:
        self.db.rollback()

    # Directory

    def get_professional(self, professional_id: str, for_update: bool = False) -> Professional | None:
        with self._reading():
            query = self.db.query(Professional).filter(Professional.id == professional_id)
            if for_update:
                query = query.with_for_update()
            return query.first()

    # Weekly availability

    def get_active_rule(self, professional_id: str, day_of_week: int) -> AvailabilityRule | None:
        with self._reading():
            return self.db.query(AvailabilityRule).filter(
                AvailabilityRule.professional_id == professional_id,
                AvailabilityRule.day_of_week == day_of_week,
                AvailabilityRule.is_active.is_(True),
            ).first()

    def list_rules(self, professional_id: str) -> list[AvailabilityRule]:
        with self._reading():
            return self.db.query(AvailabilityRule).filter(
                AvailabilityRule.professional_id == professional_id,
            ).order_by(AvailabilityRule.day_of_week.asc()).all()

    def replace_rules(self, professional_id: str, rules: list[AvailabilityRule]) -> list[AvailabilityRule]:
        try:
            self.db.query(AvailabilityRule).filter(
                AvailabilityRule.professional_id == professional_id,
            ).delete(synchronize_session=False)
            self.db.flush()
            for rule in rules:
                rule.professional_id = professional_id
                self.db.add(rule)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailableError() from exc

        self.commit()
        return self.list_rules(professional_id)

    # Blocked intervals

    def list_blocked_intervals(
        self,
        professional_id: str,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[BlockedSlot]:
        with self._reading():
            query = self.db.query(BlockedSlot).filter(BlockedSlot.professional_id == professional_id)
            if window_start is not None:
                query = query.filter(BlockedSlot.end_datetime >= to_utc(window_start))
            if window_end is not None:
                query = query.filter(BlockedSlot.start_datetime <= to_utc(window_end))
            return query.order_by(BlockedSlot.start_datetime.asc()).all()

    def get_blocked_interval(self, professional_id: str, slot_id: int) -> BlockedSlot | None:
        with self._reading():
            return self.db.query(BlockedSlot).filter(
                BlockedSlot.id == slot_id,
                BlockedSlot.professional_id == professional_id,
            ).first()

    def insert_blocked_interval(self, blocked_slot: BlockedSlot) -> BlockedSlot:
        blocked_slot.start_datetime = to_utc(blocked_slot.start_datetime)
        blocked_slot.end_datetime = to_utc(blocked_slot.end_datetime)
        self.db.add(blocked_slot)
        self.commit()
        self.db.refresh(blocked_slot)
        return blocked_slot

    def delete_blocked_interval(self, blocked_slot: BlockedSlot) -> None:
        self.db.delete(blocked_slot)
        self.commit()

    # Appointments

    def get_appointment(self, appointment_id: str, for_update: bool = False) -> Appointment | None:
        with self._reading():
            query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
            if for_update:
                query = query.with_for_update()
            return query.first()

    def list_active_appointments(
        self,
        professional_id: str,
        appointment_date: date,
        exclude_id: str | None = None,
    ) -> list[Appointment]:
        with self._reading():
            query = self.db.query(Appointment).filter(
                Appointment.provider_id == professional_id,
                Appointment.appointment_date == appointment_date,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            if exclude_id is not None:
                query = query.filter(Appointment.id != exclude_id)
            return query.all()

    def search_appointments(
        self,
        participant_id: str,
        status: str | None = None,
        requester_id: str | None = None,
        provider_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Appointment], int]:
        with self._reading():
            query = self.db.query(Appointment).filter(
                or_(Appointment.requester_id == participant_id, Appointment.provider_id == participant_id),
            )
            if status:
                query = query.filter(Appointment.status == status)
            if requester_id:
                query = query.filter(Appointment.requester_id == requester_id)
            if provider_id:
                query = query.filter(Appointment.provider_id == provider_id)
            if date_from:
                query = query.filter(Appointment.appointment_date >= date_from)
            if date_to:
                query = query.filter(Appointment.appointment_date <= date_to)

            total = query.count()
            appointments = query.order_by(
                Appointment.appointment_date.asc(),
                Appointment.appointment_time.asc(),
            ).offset(offset).limit(limit).all()

            return appointments, total

    def insert(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.commit()
        self.db.refresh(appointment)
        return appointment

    def update(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.commit()
        self.db.refresh(appointment)
        return appointment

    def delete(self, appointment: Appointment) -> None:
        self.db.delete(appointment)
        self.commit()
