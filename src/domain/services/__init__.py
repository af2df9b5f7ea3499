"""Domain services."""

from src.domain.services.attendance import AttendanceService, derive_attendance_status
from src.domain.services.cohorts import CohortAdminService
from src.domain.services.enrollment import EnrollmentService
from src.domain.services.identity import IdentityResolver
from src.domain.services.lifecycle import (
    TRANSITIONS,
    EnrollmentLifecycle,
    LifecycleEvent,
    LifecycleTrigger,
    next_status,
)
from src.domain.services.notifications import (
    LifecycleNotification,
    NotificationSink,
    NullNotificationSink,
    RQNotificationSink,
)
from src.domain.services.reports import ReportService, attendance_rate
from src.domain.services.scope import CohortScopeValidator, ScopeValidator
from src.domain.services.scores import ScoreService

__all__ = [
    "TRANSITIONS",
    "AttendanceService",
    "CohortAdminService",
    "CohortScopeValidator",
    "EnrollmentLifecycle",
    "EnrollmentService",
    "IdentityResolver",
    "LifecycleEvent",
    "LifecycleNotification",
    "LifecycleTrigger",
    "NotificationSink",
    "NullNotificationSink",
    "RQNotificationSink",
    "ReportService",
    "ScopeValidator",
    "ScoreService",
    "attendance_rate",
    "derive_attendance_status",
    "next_status",
]
