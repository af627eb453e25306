from datetime import date, datetime, time

from medlink.scheduling.store import SchedulingStore
from medlink.scheduling.time_utils import (
    add_minutes,
    day_of_week,
    ensure_aware,
    intervals_overlap,
    parse_date,
    parse_time,
    to_instant,
)


def is_within_availability(
    store: SchedulingStore,
    provider_id: str,
    slot_date: date | str,
    slot_time: time | str,
) -> bool:
    """Whether a slot start falls inside the provider's weekly window for that day.

    The window is closed at both ends and only the start is checked: a slot
    starting at the closing time is accepted even though it runs past it.
    """
    slot_date = parse_date(slot_date)
    slot_time = parse_time(slot_time)

    rule = store.get_active_rule(provider_id, day_of_week(slot_date))
    if rule is None or not rule.is_active:
        return False

    return rule.start_time <= slot_time <= rule.end_time


def has_blocking_conflict(
    store: SchedulingStore,
    provider_id: str,
    candidate_start: datetime,
    candidate_end: datetime,
) -> bool:
    blocked_slots = store.list_blocked_intervals(provider_id, candidate_start, candidate_end)

    return any(
        intervals_overlap(
            candidate_start,
            candidate_end,
            ensure_aware(blocked_slot.start_datetime),
            ensure_aware(blocked_slot.end_datetime),
        )
        for blocked_slot in blocked_slots
    )


def has_appointment_conflict(
    store: SchedulingStore,
    provider_id: str,
    candidate_start: datetime,
    candidate_end: datetime,
    exclude_appointment_id: str | None = None,
) -> bool:
    appointments = store.list_active_appointments(
        provider_id,
        candidate_start.date(),
        exclude_id=exclude_appointment_id,
    )

    for appointment in appointments:
        existing_start = to_instant(appointment.appointment_date, appointment.appointment_time)
        existing_end = add_minutes(existing_start, appointment.duration)
        if intervals_overlap(candidate_start, candidate_end, existing_start, existing_end):
            return True

    return False
