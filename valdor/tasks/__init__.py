"""Task assignment board."""

from .assignment import AssignmentEngine, compute_match_score
from .board import BulkAssignResult, TaskBoard
from .classifier import ColumnKey, classify
from .models import RecommendedStaff, Task, TaskFilters

__all__ = [
    "AssignmentEngine",
    "BulkAssignResult",
    "ColumnKey",
    "RecommendedStaff",
    "Task",
    "TaskBoard",
    "TaskFilters",
    "classify",
    "compute_match_score",
]
