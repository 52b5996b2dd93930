"""Outcome values returned by wizard and board operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"
    VALIDATION_ERROR = "validation_error"
    NO_RESULTS = "no_results"
    SERVICE_ERROR = "service_error"
    NOTHING_TO_DO = "nothing_to_do"
    WARNING = "warning"
    STALE = "stale"


@dataclass
class Outcome:
    """Result of a single user-level operation.

    The presentation layer decides how (and whether) to show it.
    """

    kind: OutcomeKind
    message: str = ""
    detail: str | None = None
    field: str | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.PARTIAL_SUCCESS)

    @classmethod
    def success(cls, message: str = "", **kwargs: Any) -> Outcome:
        return cls(OutcomeKind.SUCCESS, message, **kwargs)

    @classmethod
    def failure(cls, message: str, **kwargs: Any) -> Outcome:
        return cls(OutcomeKind.FAILURE, message, **kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: Any) -> Outcome:
        return cls(OutcomeKind.WARNING, message, **kwargs)

    @classmethod
    def invalid(cls, message: str, field: str | None = None) -> Outcome:
        return cls(OutcomeKind.VALIDATION_ERROR, message, field=field)
