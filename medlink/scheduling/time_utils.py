import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from medlink.core import config
from medlink.scheduling.errors import InvalidTimeFormatError

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')


def local_timezone() -> ZoneInfo:
    return ZoneInfo(config.APP_TIMEZONE)


def now() -> datetime:
    return datetime.now(local_timezone())


def parse_date(value: date | str) -> date:
    if isinstance(value, date):
        return value

    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidTimeFormatError(f'Invalid date {value!r} (expected YYYY-MM-DD).')

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidTimeFormatError(f'Invalid date {value!r} (expected YYYY-MM-DD).') from exc


def parse_time(value: time | str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise InvalidTimeFormatError(f'Invalid time {value!r} (expected HH:MM).')

    hour, minute = value.split(':')
    return time(int(hour), int(minute))


def to_instant(slot_date: date | str, slot_time: time | str) -> datetime:
    """Combine a calendar date and a wall-clock time into an aware local instant."""
    return datetime.combine(parse_date(slot_date), parse_time(slot_time), tzinfo=local_timezone())


def add_minutes(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # Half-open: [10:00, 10:30) and [10:30, 11:00) do not overlap.
    return start_a < end_b and start_b < end_a


def day_of_week(value: date) -> int:
    """Day index with 0=Sunday through 6=Saturday, as stored in availability rules."""
    return (value.weekday() + 1) % 7


def ensure_aware(value: datetime) -> datetime:
    # Stores without timezone support hand back naive UTC values.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_utc(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(timezone.utc)
