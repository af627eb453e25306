from datetime import datetime

from medlink.models.availability import AvailabilityRule
from medlink.scheduling.errors import InvalidRequestError, PastSlotError
from medlink.scheduling.schemas import AvailabilityRuleRequest
from medlink.scheduling.time_utils import ensure_aware, parse_time

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


def validate_rule_set(rules: list[AvailabilityRuleRequest]) -> list[AvailabilityRule]:
    """Check a full weekly schedule and build the rows that replace the stored one."""
    seen_days: set[int] = set()
    validated: list[AvailabilityRule] = []

    for rule in rules:
        if not 0 <= rule.day_of_week <= 6:
            raise InvalidRequestError(f'Invalid day of week {rule.day_of_week} (expected 0-6, 0=Sunday).')

        day_name = DAY_NAMES[rule.day_of_week]
        if rule.day_of_week in seen_days:
            raise InvalidRequestError(f'Only one availability window is allowed per day ({day_name}).')
        seen_days.add(rule.day_of_week)

        start_time = parse_time(rule.start_time)
        end_time = parse_time(rule.end_time)
        if start_time >= end_time:
            raise InvalidRequestError(f'Invalid hours for {day_name}: start must be before end.')

        validated.append(
            AvailabilityRule(
                day_of_week=rule.day_of_week,
                start_time=start_time,
                end_time=end_time,
                is_active=rule.is_active,
            )
        )

    return validated


def validate_blocked_window(start: datetime, end: datetime, now: datetime) -> tuple[datetime, datetime]:
    start = ensure_aware(start)
    end = ensure_aware(end)

    if start >= end:
        raise InvalidRequestError('The end of a blocked period must be after its start.')

    if start < now:
        raise PastSlotError('Blocked periods cannot start in the past.')

    return start, end
