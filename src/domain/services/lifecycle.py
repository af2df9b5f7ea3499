"""Enrollment lifecycle state machine.

Transitions live in one table keyed by ``(current status, trigger)``. Writers
emit ``LifecycleEvent`` values and dispatch them once their own rows are
flushed, inside the same unit of work, so a failed transition fails the
triggering operation as a whole. Pairs missing from the table are no-ops.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

import structlog
from src.core.clock import Clock, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.services.notifications import LifecycleNotification
from src.infrastructure.db.models import Center, Cohort, Enrollment, EnrollmentStatus
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()


class LifecycleTrigger(str, Enum):
    ATTENDANCE_RECORDED = "ATTENDANCE_RECORDED"
    ATTENDANCE_GAP = "ATTENDANCE_GAP"
    COHORT_CLOSED = "COHORT_CLOSED"
    COHORT_EXTENDED = "COHORT_EXTENDED"


TRANSITIONS: dict[tuple[EnrollmentStatus, LifecycleTrigger], EnrollmentStatus] = {
    (EnrollmentStatus.ENROLLED, LifecycleTrigger.ATTENDANCE_RECORDED): EnrollmentStatus.ACTIVE,
    (EnrollmentStatus.ACTIVE, LifecycleTrigger.ATTENDANCE_RECORDED): EnrollmentStatus.ACTIVE,
    (EnrollmentStatus.ACTIVE, LifecycleTrigger.ATTENDANCE_GAP): EnrollmentStatus.ENROLLED,
    (EnrollmentStatus.ENROLLED, LifecycleTrigger.COHORT_CLOSED): EnrollmentStatus.COMPLETED,
    (EnrollmentStatus.ACTIVE, LifecycleTrigger.COHORT_CLOSED): EnrollmentStatus.COMPLETED,
    (EnrollmentStatus.COMPLETED, LifecycleTrigger.COHORT_EXTENDED): EnrollmentStatus.ACTIVE,
}


def next_status(current: EnrollmentStatus, trigger: LifecycleTrigger) -> EnrollmentStatus:
    """Return the status ``trigger`` moves ``current`` to (itself when unmapped)."""
    return TRANSITIONS.get((current, trigger), current)


def gap_days_for(center: Center | None, settings: Settings) -> int:
    if center is not None and center.attendance_gap_days:
        return center.attendance_gap_days
    return settings.attendance_gap_days


def gap_elapsed(latest: date | None, today: date, gap_days: int) -> bool:
    return latest is not None and (today - latest).days >= gap_days


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    enrollment_id: str
    trigger: LifecycleTrigger


@dataclass(slots=True)
class TransitionResult:
    enrollment_id: str
    old_status: EnrollmentStatus
    new_status: EnrollmentStatus
    trigger: LifecycleTrigger


class EnrollmentLifecycle:
    def __init__(
        self,
        uow: UnitOfWork,
        *,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.clock = clock
        self.settings = settings or get_settings()

    def _today(self) -> date:
        return business_today(self.clock, self.settings.business_timezone)

    async def apply(
        self, enrollment: Enrollment, trigger: LifecycleTrigger
    ) -> TransitionResult | None:
        """Move one enrollment along the table; returns ``None`` for a no-op."""
        old_status = enrollment.status
        new_status = next_status(old_status, trigger)
        if new_status == old_status:
            return None

        enrollment.status = new_status
        if new_status == EnrollmentStatus.COMPLETED:
            enrollment.completion_date = self._today()
        elif old_status == EnrollmentStatus.COMPLETED:
            enrollment.completion_date = None
        await self.uow.flush()

        logger.info(
            "enrollment_status_changed",
            enrollment_id=enrollment.id,
            old_status=old_status.value,
            new_status=new_status.value,
            trigger=trigger.value,
        )
        self.uow.collect(
            LifecycleNotification(
                enrollment_id=enrollment.id,
                participant_id=enrollment.participant_id,
                cohort_id=enrollment.cohort_id,
                old_status=old_status.value,
                new_status=new_status.value,
                trigger=trigger.value,
                occurred_at=self.clock(),
            )
        )
        return TransitionResult(
            enrollment_id=enrollment.id,
            old_status=old_status,
            new_status=new_status,
            trigger=trigger,
        )

    async def dispatch(self, events: Iterable[LifecycleEvent]) -> list[TransitionResult]:
        results: list[TransitionResult] = []
        for event in events:
            enrollment = await self.uow.enrollments.get(event.enrollment_id)
            if enrollment is None:
                logger.warning("lifecycle_event_orphaned", enrollment_id=event.enrollment_id)
                continue
            result = await self.apply(enrollment, event.trigger)
            if result is not None:
                results.append(result)
        return results

    async def check_attendance_gap(
        self, enrollment: Enrollment, gap_days: int
    ) -> TransitionResult | None:
        """Revert an ACTIVE enrollment whose attendance has lapsed.

        An ACTIVE enrollment without any attendance is inconsistent and is
        reverted as well.
        """
        if enrollment.status != EnrollmentStatus.ACTIVE:
            return None
        latest = await self.uow.attendance.latest_session_date(enrollment.id)
        if latest is not None and not gap_elapsed(latest, self._today(), gap_days):
            return None
        return await self.apply(enrollment, LifecycleTrigger.ATTENDANCE_GAP)

    async def check_cohort_attendance_gaps(self, cohort: Cohort) -> list[TransitionResult]:
        center = await self.uow.cohorts.get_center(cohort.center_id)
        gap_days = gap_days_for(center, self.settings)
        enrollments = await self.uow.enrollments.list_for_cohort(
            cohort.id, statuses=[EnrollmentStatus.ACTIVE]
        )
        results: list[TransitionResult] = []
        for enrollment in enrollments:
            result = await self.check_attendance_gap(enrollment, gap_days)
            if result is not None:
                results.append(result)
        if results:
            logger.info("attendance_gap_reverted", cohort_id=cohort.id, count=len(results))
        return results

    async def complete_cohort_enrollments(self, cohort_id: str) -> list[TransitionResult]:
        return await self._fire_for_cohort(cohort_id, LifecycleTrigger.COHORT_CLOSED)

    async def reactivate_cohort_enrollments(self, cohort_id: str) -> list[TransitionResult]:
        return await self._fire_for_cohort(cohort_id, LifecycleTrigger.COHORT_EXTENDED)

    async def _fire_for_cohort(
        self, cohort_id: str, trigger: LifecycleTrigger
    ) -> list[TransitionResult]:
        enrollments = await self.uow.enrollments.list_for_cohort(cohort_id)
        events = [LifecycleEvent(enrollment.id, trigger) for enrollment in enrollments]
        results = await self.dispatch(events)
        logger.info(
            "cohort_enrollments_transitioned",
            cohort_id=cohort_id,
            trigger=trigger.value,
            updated=len(results),
        )
        return results
