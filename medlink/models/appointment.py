"""Appointment model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time, text
from medlink.database import Base

ACTIVE_STATUSES = ('pending', 'confirmed')

_ACTIVE_STATUS_CLAUSE = text("status IN ('pending', 'confirmed')")


class Appointment(Base):
    """Represents an appointment booked by one professional in another's calendar."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("requester_id <> provider_id", name="ck_appointments_not_self"),
        CheckConstraint("duration BETWEEN 15 AND 480", name="ck_appointments_duration"),
        Index(
            "uq_appointments_provider_active_start",
            "provider_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=_ACTIVE_STATUS_CLAUSE,
            postgresql_where=_ACTIVE_STATUS_CLAUSE,
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String(36), ForeignKey("professionals.id"), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("professionals.id"), nullable=False, index=True)
    patient_first_name = Column(String, nullable=False)
    patient_last_name = Column(String, nullable=False)
    patient_phone = Column(String, nullable=False)
    reason = Column(String, nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    duration = Column(Integer, nullable=False, default=30)
    status = Column(String, nullable=False, default='pending')  # pending/confirmed/cancelled/completed
    notes = Column(String(500))
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
