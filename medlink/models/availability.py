"""Weekly availability model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Time, UniqueConstraint
from medlink.database import Base


class AvailabilityRule(Base):
    """Represents a recurring weekly window in which a professional accepts bookings."""
    __tablename__ = "availabilities"
    __table_args__ = (
        UniqueConstraint("professional_id", "day_of_week", name="uq_availabilities_professional_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availabilities_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availabilities_window"),
    )

    id = Column(Integer, primary_key=True)
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
