"""Hotel operations client: menu extraction wizard and task assignment board."""

from .client import APIError, ExtractionResponse, ValdorAPI
from .config import ValdorConfig, load_config
from .menu import CandidateRecord, ExtractionBackend, create_backend
from .menu.commit import CommitBatcher, CommitResult
from .menu.normalizer import CategoryPolicy, normalize
from .menu.session import ExtractionSession, InputMode, Stage
from .results import Outcome, OutcomeKind
from .tasks import (
    AssignmentEngine,
    BulkAssignResult,
    ColumnKey,
    Task,
    TaskBoard,
    TaskFilters,
    classify,
)

__all__ = [
    "APIError",
    "AssignmentEngine",
    "BulkAssignResult",
    "CandidateRecord",
    "CategoryPolicy",
    "ColumnKey",
    "CommitBatcher",
    "CommitResult",
    "ExtractionBackend",
    "ExtractionResponse",
    "ExtractionSession",
    "InputMode",
    "Outcome",
    "OutcomeKind",
    "Stage",
    "Task",
    "TaskBoard",
    "TaskFilters",
    "ValdorAPI",
    "ValdorConfig",
    "classify",
    "create_backend",
    "load_config",
    "normalize",
]
