"""Blocked interval model definitions."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from medlink.database import Base


class BlockedSlot(Base):
    """Represents a one-off period during which a professional cannot be booked."""
    __tablename__ = "blocked_slots"
    __table_args__ = (
        CheckConstraint("start_datetime < end_datetime", name="ck_blocked_slots_window"),
    )

    id = Column(Integer, primary_key=True)
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=False, index=True)
    start_datetime = Column(DateTime(timezone=True), nullable=False)
    end_datetime = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String(200))
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
