from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(slots=True)
class User:
    """Represents an authenticated principal taken from a verified token."""

    user_id: str
    email: str = ""
    roles: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ActorContext:
    """Authorization context of a facilitator, built once per request.

    Every downstream service scopes its reads and writes by these ids; the
    object is immutable so nothing can widen the scope after resolution.
    """

    actor_id: str
    partner_id: str
    center_id: str
    scope_id: str


@dataclass(frozen=True, slots=True)
class AttendanceItem:
    enrollment_id: str
    module_id: str
    session_date: date
    status: str
    remarks: str | None = None


@dataclass(frozen=True, slots=True)
class TodayAttendanceItem:
    """A single "mark present" / "mark absent" click."""

    enrollment_id: str
    module_id: str
    action: str
    reason: str | None = None
    session_date: date | None = None


@dataclass(frozen=True, slots=True)
class ScoreItem:
    enrollment_id: str
    module_id: str
    assessment_type: str
    score_value: float
    max_score: float | None = None
    assessment_name: str | None = None
    assessment_date: date | None = None


@dataclass(slots=True)
class ParticipantQuery:
    search: str | None = None
    status: str | None = None
    gender: str | None = None
    sort_by: str = "first_name"
    sort_direction: str = "asc"
    page: int = 0
    size: int = 10
