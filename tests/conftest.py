import os
from datetime import datetime, time
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('APP_TIMEZONE', 'Europe/Paris')

from medlink.database import Base  # noqa: E402
from medlink.models.appointment import Appointment  # noqa: E402
from medlink.models.availability import AvailabilityRule  # noqa: E402
from medlink.models.blocked_slot import BlockedSlot  # noqa: E402
from medlink.models.professional import Professional  # noqa: E402
from medlink.scheduling.calendar_service import CalendarService  # noqa: E402
from medlink.scheduling.engine import SchedulingEngine  # noqa: E402
from medlink.scheduling.store import SchedulingStore  # noqa: E402

PARIS = ZoneInfo('Europe/Paris')

# Tuesday; 2030-01-06 is a Sunday and 2030-01-07 a Monday.
NOW = datetime(2030, 1, 1, 8, 0, tzinfo=PARIS)
MONDAY = '2030-01-07'

TABLES = [
    Professional.__table__,
    AvailabilityRule.__table__,
    BlockedSlot.__table__,
    Appointment.__table__,
]


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def provider(db_session):
    professional = Professional(
        id='provider-1',
        email='provider@example.fr',
        first_name='Paula',
        last_name='Provider',
        profession='physiotherapist',
    )
    db_session.add(professional)
    db_session.commit()
    return professional


@pytest.fixture
def requester(db_session):
    professional = Professional(
        id='requester-1',
        email='requester@example.fr',
        first_name='Remi',
        last_name='Requester',
        profession='doctor',
    )
    db_session.add(professional)
    db_session.commit()
    return professional


@pytest.fixture
def monday_rule(db_session, provider):
    rule = AvailabilityRule(
        professional_id=provider.id,
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(18, 0),
        is_active=True,
    )
    db_session.add(rule)
    db_session.commit()
    return rule


@pytest.fixture
def store(db_session):
    return SchedulingStore(db_session)


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def scheduling_engine(store, notifications):
    def record(recipient_id, event, appointment):
        notifications.append((recipient_id, event, appointment.id))

    return SchedulingEngine(store, clock=lambda: NOW, notifier=record)


@pytest.fixture
def calendar_service(store):
    return CalendarService(store, clock=lambda: NOW)
