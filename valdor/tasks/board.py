"""Task board: load, classify, mutate and reload."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..client import APIError, ValdorAPI
from ..results import Outcome, OutcomeKind
from .assignment import AssignmentEngine
from .classifier import BOARD_COLUMNS, ColumnKey
from .models import Task, TaskFilters, parse_datetime

logger = logging.getLogger(__name__)


@dataclass
class BulkAssignment:
    task_id: str
    title: str
    staff_name: str
    match_score: int


@dataclass
class BulkFailure:
    task_id: str
    title: str
    reason: str


@dataclass
class BulkAssignResult:
    success: list[BulkAssignment] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)
    total: int = 0

    def outcome(self) -> Outcome:
        if self.success and not self.failed:
            return Outcome.success(
                f"Assigned {len(self.success)} task(s) to recommended staff", data=self
            )
        if self.success:
            return Outcome(
                OutcomeKind.PARTIAL_SUCCESS,
                f"Assigned {len(self.success)} task(s). {len(self.failed)} task(s) failed.",
                detail="; ".join(f"{f.title}: {f.reason}" for f in self.failed),
                data=self,
            )
        return Outcome.failure(
            "Could not assign any tasks. Please try manual assignment.",
            detail="; ".join(f"{f.title}: {f.reason}" for f in self.failed),
            data=self,
        )


def _empty_columns() -> dict[ColumnKey, list[Task]]:
    return {key: [] for key in BOARD_COLUMNS}


class TaskBoard:
    """Four-column view of the task list.

    The server is the only source of truth: every mutation is followed by
    a full reload and reclassification, never a local patch.
    """

    def __init__(
        self,
        api: ValdorAPI,
        engine: AssignmentEngine | None = None,
        filters: TaskFilters | None = None,
    ) -> None:
        self._api = api
        self.engine = engine or AssignmentEngine(api)
        self.filters = filters or TaskFilters()
        self.columns: dict[ColumnKey, list[Task]] = _empty_columns()
        self.auto_assigning = False

    def tasks(self) -> list[Task]:
        return [task for key in BOARD_COLUMNS for task in self.columns[key]]

    def find(self, task_id: str) -> Task | None:
        for task in self.tasks():
            if task.id == task_id:
                return task
        return None

    async def reload(self) -> Outcome:
        try:
            raw_tasks = await self._api.list_tasks(self.filters.to_params())
        except APIError as e:
            logger.warning("Failed to load tasks: %s", e.message)
            return Outcome.failure("Unable to fetch tasks", detail=e.message)

        columns = _empty_columns()
        for raw in raw_tasks:
            task = Task.from_raw(raw)
            key = task.column
            if key is ColumnKey.EXCLUDED:
                continue
            columns[key].append(task)
        self.columns = columns

        logger.debug(
            "Board loaded: %s",
            ", ".join(f"{k.value}={len(v)}" for k, v in columns.items()),
        )
        return Outcome.success("Task board updated", data=len(self.tasks()))

    async def _reload_after(self, message: str) -> Outcome:
        reloaded = await self.reload()
        if not reloaded.ok:
            return Outcome.warning(
                f"{message}, but the board could not be refreshed",
                detail=reloaded.detail,
            )
        return Outcome.success(message)

    async def assign(self, task: Task, handler_id: str | None) -> Outcome:
        try:
            await self.engine.assign(task, handler_id)
        except ValueError as e:
            return Outcome.invalid(str(e), "staff_id" if task.id else "task_id")
        except APIError as e:
            return Outcome.failure("Failed to assign task", detail=e.message)
        return await self._reload_after(f"{task.title} has been assigned")

    async def unassign(self, task: Task, reason: str | None = None) -> Outcome:
        try:
            await self.engine.unassign(task, reason)
        except ValueError as e:
            return Outcome.invalid(str(e), "task_id")
        except APIError as e:
            return Outcome.failure("Failed to cancel task", detail=e.message)
        return await self._reload_after(f"{task.title} returned to the pending queue")

    async def update_status(self, task: Task, status: str, notes: str = "") -> Outcome:
        if not task.id:
            return Outcome.invalid("Task identifier is missing", "task_id")
        if not status:
            return Outcome.invalid("Status is required", "status")
        try:
            await self._api.update_task_status(task.id, status, notes)
        except APIError as e:
            return Outcome.failure("Failed to update task status", detail=e.message)
        return await self._reload_after(f"{task.title} marked {status}")

    async def create_task(self, values: Mapping[str, Any]) -> Outcome:
        """Create a task; the parsed Task is returned as the outcome data."""
        title = str(values.get("title") or "").strip()
        description = str(values.get("description") or "").strip()
        if not title:
            return Outcome.invalid("Task title is required", "title")
        if not description:
            return Outcome.invalid("Task description is required", "description")
        if not values.get("location"):
            return Outcome.invalid("Task location is required", "location")

        try:
            created = await self._api.create_task(build_task_payload(values))
        except APIError as e:
            return Outcome.failure("Failed to create task", detail=e.message)

        task = Task.from_raw(created) if created else None
        reloaded = await self.reload()
        return Outcome.success(
            f"{title} has been added",
            detail=None if reloaded.ok else reloaded.detail,
            data=task,
        )

    async def auto_assign_all(self) -> Outcome:
        """Assign each pending task to its top-ranked candidate, one at a time."""
        if self.auto_assigning:
            return Outcome.warning("Auto-assignment is already running")

        pending = list(self.columns[ColumnKey.PENDING])
        if not pending:
            return Outcome(
                OutcomeKind.NOTHING_TO_DO,
                "No pending tasks",
                detail="All tasks are already assigned or none are waiting.",
            )

        assignable = [t for t in pending if self.engine.rank_candidates(t)]
        if not assignable:
            return Outcome(
                OutcomeKind.NOTHING_TO_DO,
                "No staff recommendations",
                detail="No suitable staff found for pending tasks. Please assign manually.",
            )

        self.auto_assigning = True
        result = BulkAssignResult(total=len(assignable))
        logger.info("Auto-assigning %d task(s)", len(assignable))
        try:
            for task in assignable:
                best = self.engine.rank_candidates(task)[0]
                if not best.staff_id:
                    result.failed.append(
                        BulkFailure(task.id, task.title, "No valid staff ID found")
                    )
                    continue
                try:
                    await self.engine.assign(task, best.staff_id)
                except (APIError, ValueError) as e:
                    logger.warning("Failed to assign %s: %s", task.title, e)
                    result.failed.append(BulkFailure(task.id, task.title, str(e)))
                except Exception as e:
                    logger.exception("Unexpected error assigning %s", task.title)
                    result.failed.append(
                        BulkFailure(task.id, task.title, str(e) or "Unknown error")
                    )
                else:
                    result.success.append(
                        BulkAssignment(task.id, task.title, best.name, best.match_score)
                    )
            await self.reload()
        finally:
            self.auto_assigning = False

        logger.info(
            "Auto-assign finished: %d assigned, %d failed",
            len(result.success), len(result.failed),
        )
        return result.outcome()


def build_task_payload(values: Mapping[str, Any]) -> dict:
    department = values.get("department") or ""
    payload: dict[str, Any] = {
        "title": str(values.get("title") or "").strip(),
        "description": str(values.get("description") or "").strip(),
        "department": department,
        "priority": values.get("priority"),
        "status": "Pending",
        "location": values.get("location"),
        "category": str(department).lower() or "general",
    }

    due = values.get("due_date")
    due = due if isinstance(due, datetime) else parse_datetime(due)
    if due is not None:
        payload["dueDate"] = due.isoformat()

    try:
        duration = float(values.get("estimated_duration") or 0)
    except (TypeError, ValueError):
        duration = 0
    if math.isfinite(duration) and duration > 0:
        payload["estimatedDuration"] = round(duration)

    room = str(values.get("room_number") or "").strip()
    if room:
        payload["roomNumber"] = room

    note = str(values.get("manager_note") or "").strip()
    if note:
        payload["notes"] = {"manager": note}

    if values.get("auto_create_follow_up") is True:
        payload["autoCreateFollowUp"] = True
    return payload
