"""Task data models parsed from raw API payloads."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .assignment import compute_match_score
from .classifier import ColumnKey, classify

PRIORITIES = ("urgent", "high", "medium", "low")
NO_DESCRIPTION = "No additional notes provided for this task."

_OBJECT_ID_RE = re.compile(r"^[a-f\d]{24}$", re.IGNORECASE)

_DEPARTMENTS = {
    "food": "Kitchen",
    "kitchen": "Kitchen",
    "cleaning": "cleaning",
    "housekeeping": "cleaning",
    "maintenance": "Maintenance",
    "services": "service",
    "service": "service",
    "concierge": "service",
    "room service": "service",
}

_STATUS_FILTERS = {
    "pending": "Pending",
    "assigned": "Assigned",
    "inprogress": "In-Progress",
    "completed": "Completed",
}


def title_case(value: Any, fallback: str = "") -> str:
    if not value:
        return fallback
    text = re.sub(r"[_-]+", " ", str(value).lower())
    return re.sub(r"\b\w", lambda m: m.group().upper(), text)


def person_name(person: Any) -> str:
    """Display name for a person reference; bare object ids yield ''."""
    if not person:
        return ""
    if isinstance(person, str):
        value = person.strip()
        return "" if _OBJECT_ID_RE.match(value) else value
    if not isinstance(person, Mapping):
        return ""
    parts = [p for p in (person.get("firstName"), person.get("lastName")) if p]
    if parts:
        return " ".join(str(p) for p in parts)
    return str(person.get("name") or person.get("fullName") or person.get("email") or "")


def map_department(value: Any) -> str:
    if not value:
        return "General"
    return _DEPARTMENTS.get(str(value).strip().lower()) or title_case(value, "General")


def normalize_priority(value: Any) -> str:
    priority = str(value or "").strip().lower()
    if priority == "normal":
        return "medium"
    return priority if priority in PRIORITIES else "medium"


def parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def location_label(raw: Mapping) -> str:
    if raw.get("roomNumber"):
        return f"Room {raw['roomNumber']}"
    if raw.get("room"):
        return f"Room {raw['room']}"
    if raw.get("location"):
        return title_case(raw["location"], "General Area")
    if raw.get("category"):
        return title_case(raw["category"], "General Area")
    return "General Area"


def _description(raw: Mapping) -> str:
    notes = raw.get("notes")
    manager_note = staff_note = plain_note = None
    if isinstance(notes, Mapping):
        manager_note = notes.get("manager")
        staff_note = notes.get("staff")
    elif isinstance(notes, str):
        plain_note = notes
    for value in (
        raw.get("description"),
        raw.get("details"),
        raw.get("summary"),
        manager_note,
        staff_note,
        plain_note,
    ):
        if value and str(value).strip():
            return str(value).strip()
    return NO_DESCRIPTION


@dataclass
class RecommendedStaff:
    """A candidate handler for a task, as ranked by the server."""

    name: str
    staff_id: str
    role: str = "Team Member"
    match_score: int = 0
    email: str | None = None


def _recommended_staff(
    raw: Mapping, department: str, priority: str, due_date: datetime | None
) -> list[RecommendedStaff]:
    suggestions = raw.get("recommendedStaff")
    if not isinstance(suggestions, list):
        suggestions = raw.get("suggestedStaff")
    if not isinstance(suggestions, list):
        return []

    fallback = compute_match_score(priority, due_date)
    staff: list[RecommendedStaff] = []
    for rank, entry in enumerate(suggestions):
        if not isinstance(entry, Mapping):
            continue
        staff_id = (
            entry.get("staffId") or entry.get("_id") or entry.get("id") or entry.get("userId")
        )
        if not staff_id:
            continue
        score = entry.get("match") or entry.get("score")
        try:
            score = int(score) if score else max(60, fallback - rank * 3)
        except (TypeError, ValueError, OverflowError):
            score = max(60, fallback - rank * 3)
        staff.append(
            RecommendedStaff(
                name=person_name(entry) or f"Suggested Staff {rank + 1}",
                staff_id=str(staff_id),
                role=str(entry.get("role") or entry.get("position") or department or "Team Member"),
                match_score=score,
                email=entry.get("email") or None,
            )
        )
    return staff


@dataclass
class Task:
    """One unit of operational work shown on the board."""

    id: str
    title: str
    description: str = NO_DESCRIPTION
    department: str = "General"
    priority: str = "medium"
    status: str = ""
    is_workflow_task: bool = False
    assigned_to: str = ""
    due_date: datetime | None = None
    room: str = ""
    location_label: str = "General Area"
    estimated_duration: int | None = None
    recommended_staff: list[RecommendedStaff] = field(default_factory=list)
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_raw(cls, raw: Mapping) -> Task:
        department = map_department(raw.get("department") or raw.get("type"))
        priority = normalize_priority(raw.get("priority"))
        due_date = parse_datetime(
            raw.get("dueDate") or raw.get("expectedCompletion") or raw.get("completionTime")
        )
        assigned = (
            raw.get("assignedTo")
            or raw.get("assignedStaff")
            or raw.get("assigned_user")
            or raw.get("assignedUser")
            or raw.get("assigned")
        )
        duration = raw.get("estimatedDuration") or raw.get("estimatedHours") or raw.get("duration")
        try:
            duration = int(duration) if duration else None
        except (TypeError, ValueError, OverflowError):
            duration = None

        return cls(
            id=str(raw.get("_id") or raw.get("id") or ""),
            title=str(raw.get("title") or title_case(raw.get("type"), "Task")),
            description=_description(raw),
            department=department,
            priority=priority,
            status=str(raw.get("status") or ""),
            is_workflow_task=raw.get("isWorkflowTask") is True,
            assigned_to=person_name(assigned),
            due_date=due_date,
            room=str(raw.get("roomNumber") or raw.get("room") or ""),
            location_label=location_label(raw),
            estimated_duration=duration,
            recommended_staff=_recommended_staff(raw, department, priority, due_date),
            raw=dict(raw),
        )

    @property
    def column(self) -> ColumnKey:
        return classify(self.status, self.is_workflow_task)

    @property
    def match_score(self) -> int:
        """Server match score, then the top candidate's, then the local heuristic."""
        for key in ("aiMatch", "matchScore"):
            value = self.raw.get(key)
            if value:
                try:
                    return int(value)
                except (TypeError, ValueError, OverflowError):
                    continue
        if self.recommended_staff:
            return self.recommended_staff[0].match_score
        return compute_match_score(self.priority, self.due_date)


def map_status_filter(value: str | None) -> str | None:
    """Board filter value → API status value; 'all' and empty → None."""
    if not value or value == "all":
        return None
    key = re.sub(r"[-_\s]+", "", str(value).lower())
    return _STATUS_FILTERS.get(key, value)


@dataclass
class TaskFilters:
    status: str = "all"
    department: str = "all"
    priority: str = "all"
    search: str = ""

    def to_params(self) -> dict[str, str]:
        params = {
            "status": map_status_filter(self.status),
            "department": None if self.department == "all" else self.department,
            "priority": None if self.priority == "all" else self.priority,
            "search": (self.search or "").strip() or None,
        }
        return {k: v for k, v in params.items() if v}
