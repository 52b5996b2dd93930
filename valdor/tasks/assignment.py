"""Candidate ranking and single-task assignment."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..client import ValdorAPI
    from .models import RecommendedStaff, Task

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Staff did not accept task"

_BASE_SCORES = {
    "urgent": 96,
    "high": 92,
    "medium": 86,
    "normal": 86,
    "low": 82,
}
_UNKNOWN_PRIORITY_SCORE = 84
MIN_SCORE = 55
MAX_SCORE = 99


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_match_score(
    priority: str | None,
    due_date: datetime | None = None,
    now: datetime | None = None,
) -> int:
    """Fallback match score used when the server did not rank a candidate.

    Base points come from the priority; an overdue task gets +3 and one due
    within four hours gets +2. The result is clamped to [55, 99].
    """
    score = _BASE_SCORES.get(str(priority or "").strip().lower(), _UNKNOWN_PRIORITY_SCORE)

    if due_date is not None:
        now = _as_utc(now or datetime.now(timezone.utc))
        hours_until_due = (_as_utc(due_date) - now).total_seconds() / 3600
        if hours_until_due < 0:
            score += 3
        elif hours_until_due < 4:
            score += 2

    return max(MIN_SCORE, min(MAX_SCORE, round(score)))


class AssignmentEngine:
    """Submits assignment changes for one task at a time.

    Callers reload the board after every successful call; nothing here
    patches local task state.
    """

    def __init__(
        self, api: ValdorAPI, default_cancel_reason: str = DEFAULT_CANCEL_REASON
    ) -> None:
        self._api = api
        self.default_cancel_reason = default_cancel_reason

    def rank_candidates(self, task: Task) -> list[RecommendedStaff]:
        """Server-ranked candidates in server order; empty when there are none."""
        return list(task.recommended_staff)

    async def assign(self, task: Task, handler_id: str | None) -> None:
        """Assign a task to a staff member.

        Raises:
            ValueError: If the task or the staff member has no identifier.
            APIError: If the server rejects the assignment.
        """
        if not task.id:
            raise ValueError("Task identifier is missing")
        if not handler_id:
            raise ValueError("Please select a staff member to assign this task")

        await self._api.assign_task(task.id, handler_id)
        logger.info("Assigned task %s (%s) to %s", task.id, task.title, handler_id)

    async def unassign(self, task: Task, reason: str | None = None) -> None:
        """Return a task to the pending queue."""
        if not task.id:
            raise ValueError("Task identifier is missing")
        reason = (reason or "").strip() or self.default_cancel_reason
        await self._api.cancel_task(task.id, reason)
        logger.info("Unassigned task %s (%s): %s", task.id, task.title, reason)
