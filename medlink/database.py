import logging
from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from medlink.core import config

logger = logging.getLogger(__name__)


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False


def use_immediate_transactions(sqlite_engine: Engine) -> None:
    """Make every SQLite transaction take the write lock when it begins.

    SQLite ignores ``SELECT ... FOR UPDATE``; ``BEGIN IMMEDIATE`` is what
    serializes two bookings racing through check-then-insert.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


if engine.dialect.name == "sqlite":
    use_immediate_transactions(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)
        table_names = inspector.get_table_names()

        if 'availabilities' not in table_names or 'blocked_slots' not in table_names:
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('availabilities')}
        migration_steps = [
            ('is_active', 'ALTER TABLE availabilities ADD COLUMN is_active BOOLEAN DEFAULT TRUE'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_blocked_slots_professional_range '
                    'ON blocked_slots(professional_id, start_datetime, end_datetime)'
                )
            )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR(500)'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_provider_date '
                    'ON appointments(provider_id, appointment_date)'
                )
            )

        if engine.dialect.name == 'postgresql':
            ensure_appointment_exclusion_constraint()

        _appointment_schema_checked = True


def ensure_appointment_exclusion_constraint() -> None:
    """Forbid overlapping active appointments for one provider at the database level."""
    constraint_exists = text(
        "SELECT 1 FROM pg_constraint WHERE conname = 'appointments_no_overlap'"
    )
    add_constraint = text(
        "ALTER TABLE appointments ADD CONSTRAINT appointments_no_overlap "
        "EXCLUDE USING gist ("
        "provider_id WITH =, "
        "tsrange("
        "appointment_date + appointment_time, "
        "appointment_date + appointment_time + duration * interval '1 minute'"
        ") WITH &&"
        ") WHERE (status IN ('pending', 'confirmed'))"
    )

    try:
        with engine.begin() as connection:
            connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
            if connection.execute(constraint_exists).first() is None:
                connection.execute(add_constraint)
    except SQLAlchemyError:
        logger.exception('Could not install the appointment overlap constraint.')
        raise
