"""Professional directory model definitions."""

import uuid

from sqlalchemy import Column, String
from medlink.database import Base


class Professional(Base):
    """Represents a registered healthcare professional."""
    __tablename__ = "professionals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True)
    first_name = Column(String)
    last_name = Column(String)
    profession = Column(String)  # doctor/nurse/physiotherapist/...
