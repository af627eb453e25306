import logging
from collections.abc import Callable
from datetime import datetime

from medlink.models.availability import AvailabilityRule
from medlink.models.blocked_slot import BlockedSlot
from medlink.scheduling.errors import ForbiddenError, NotFoundError, SlotBlockedError
from medlink.scheduling.rules import validate_blocked_window, validate_rule_set
from medlink.scheduling.schemas import AvailabilityRuleRequest, CreateBlockedSlotRequest
from medlink.scheduling.store import SchedulingStore
from medlink.scheduling.time_utils import ensure_aware, intervals_overlap, now

logger = logging.getLogger(__name__)


def require_owner(actor_id: str, professional_id: str, action: str) -> None:
    if actor_id != professional_id:
        raise ForbiddenError(f'You can only {action} for your own calendar.')


class CalendarService:
    """Weekly availability and blocked periods of a professional."""

    def __init__(self, store: SchedulingStore, clock: Callable[[], datetime] = now):
        self.store = store
        self.clock = clock

    def list_availability(self, professional_id: str) -> list[AvailabilityRule]:
        return self.store.list_rules(professional_id)

    def replace_availability(
        self,
        actor_id: str,
        professional_id: str,
        rules: list[AvailabilityRuleRequest],
    ) -> list[AvailabilityRule]:
        require_owner(actor_id, professional_id, 'change availability')
        validated = validate_rule_set(rules)

        replaced = self.store.replace_rules(professional_id, validated)
        logger.info('Availability of %s replaced with %d rule(s)', professional_id, len(replaced))
        return replaced

    def list_blocked_intervals(
        self,
        professional_id: str,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> list[BlockedSlot]:
        return self.store.list_blocked_intervals(professional_id, window_start, window_end)

    def create_blocked_interval(
        self,
        actor_id: str,
        professional_id: str,
        request: CreateBlockedSlotRequest,
    ) -> BlockedSlot:
        require_owner(actor_id, professional_id, 'block time')
        start, end = validate_blocked_window(request.start_datetime, request.end_datetime, self.clock())

        existing = self.store.list_blocked_intervals(professional_id, start, end)
        if any(
            intervals_overlap(start, end, ensure_aware(slot.start_datetime), ensure_aware(slot.end_datetime))
            for slot in existing
        ):
            raise SlotBlockedError('This period overlaps another blocked period.')

        blocked_slot = self.store.insert_blocked_interval(
            BlockedSlot(
                professional_id=professional_id,
                start_datetime=start,
                end_datetime=end,
                reason=request.reason,
            )
        )
        logger.info('Blocked %s to %s for %s', start, end, professional_id)
        return blocked_slot

    def delete_blocked_interval(self, actor_id: str, professional_id: str, slot_id: int) -> None:
        require_owner(actor_id, professional_id, 'unblock time')

        blocked_slot = self.store.get_blocked_interval(professional_id, slot_id)
        if blocked_slot is None:
            raise NotFoundError('Blocked period not found.')

        self.store.delete_blocked_interval(blocked_slot)
        logger.info('Unblocked slot %s for %s', slot_id, professional_id)
