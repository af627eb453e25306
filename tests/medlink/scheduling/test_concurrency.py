import threading
from datetime import datetime, time
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medlink.database import Base, use_immediate_transactions
from medlink.models.appointment import Appointment
from medlink.models.availability import AvailabilityRule
from medlink.models.blocked_slot import BlockedSlot
from medlink.models.professional import Professional
from medlink.scheduling.engine import SchedulingEngine
from medlink.scheduling.errors import SlotTakenError
from medlink.scheduling.schemas import CreateAppointmentRequest
from medlink.scheduling.store import SchedulingStore

NOW = datetime(2030, 1, 1, 8, 0, tzinfo=ZoneInfo('Europe/Paris'))

TABLES = [
    Professional.__table__,
    AvailabilityRule.__table__,
    BlockedSlot.__table__,
    Appointment.__table__,
]


@pytest.fixture
def shared_session_local(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'medlink.db'}",
        connect_args={'check_same_thread': False, 'timeout': 10},
    )
    use_immediate_transactions(engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with session_local() as db:
        db.add_all([
            Professional(id='provider-1', email='provider@example.fr', first_name='Paula', last_name='Provider'),
            Professional(id='requester-1', email='requester@example.fr', first_name='Remi', last_name='Requester'),
            Professional(id='requester-2', email='second@example.fr', first_name='Sara', last_name='Second'),
        ])
        db.add(AvailabilityRule(
            professional_id='provider-1',
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(18, 0),
            is_active=True,
        ))
        db.commit()

    try:
        yield session_local
    finally:
        engine.dispose()


def _request(appointment_time: str) -> CreateAppointmentRequest:
    return CreateAppointmentRequest(
        provider_id='provider-1',
        patient_first_name='Jeanne',
        patient_last_name='Martin',
        patient_phone='0612345678',
        reason='Knee rehabilitation',
        appointment_date='2030-01-07',
        appointment_time=appointment_time,
        duration=30,
    )


def test_overlapping_concurrent_bookings_admit_only_one(shared_session_local) -> None:
    barrier = threading.Barrier(2)
    outcomes = []

    def book(requester_id: str, appointment_time: str) -> None:
        db = shared_session_local()
        try:
            engine = SchedulingEngine(SchedulingStore(db), clock=lambda: NOW, notifier=lambda *args: None)
            barrier.wait(timeout=5)
            engine.create_appointment(requester_id, _request(appointment_time))
            outcomes.append('booked')
        except SlotTakenError:
            outcomes.append('taken')
        finally:
            db.close()

    threads = [
        threading.Thread(target=book, args=('requester-1', '10:00')),
        threading.Thread(target=book, args=('requester-2', '10:15')),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ['booked', 'taken']

    with shared_session_local() as db:
        assert db.query(Appointment).count() == 1
