"""Map a task's raw status onto a board column."""

from __future__ import annotations

import re
from enum import Enum


class ColumnKey(str, Enum):
    PENDING = "pending"
    AWAITING_ASSIGNMENT = "awaiting_assignment"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXCLUDED = "excluded"  # never shown on the board


BOARD_COLUMNS = (
    ColumnKey.PENDING,
    ColumnKey.AWAITING_ASSIGNMENT,
    ColumnKey.IN_PROGRESS,
    ColumnKey.COMPLETED,
)


def normalize_status(raw_status: str | None) -> str:
    """'In-Progress', 'in progress', ' IN_PROGRESS ' → 'in_progress'."""
    if not raw_status:
        return ""
    return re.sub(r"[\s\-_]+", "_", str(raw_status).strip().lower())


def classify(raw_status: str | None, is_workflow_task: bool = False) -> ColumnKey:
    status = normalize_status(raw_status)
    if status == "cancelled":
        return ColumnKey.EXCLUDED
    if status == "pending":
        if is_workflow_task is True:
            return ColumnKey.AWAITING_ASSIGNMENT
        return ColumnKey.PENDING
    if status in ("assigned", "in_progress", "inprogress"):
        return ColumnKey.IN_PROGRESS
    if status == "completed":
        return ColumnKey.COMPLETED
    # Unknown statuses stay visible
    return ColumnKey.PENDING
