"""Domain layer: request-scoped value objects, typed errors and services."""

from src.domain.models import (
    ActorContext,
    AttendanceItem,
    ParticipantQuery,
    ScoreItem,
    TodayAttendanceItem,
    User,
)

__all__ = [
    "ActorContext",
    "AttendanceItem",
    "ParticipantQuery",
    "ScoreItem",
    "TodayAttendanceItem",
    "User",
]
