"""Idempotent attendance recording.

Every record is keyed by ``(enrollment, module, session date)``. Re-sending a
key returns the stored record untouched, whether the earlier write came from
a previous request or from a concurrent one that won the insert race.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, time

import structlog
from src.core.clock import Clock, business_time, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.errors import InvalidInputError
from src.domain.models import ActorContext, AttendanceItem, TodayAttendanceItem
from src.domain.services.lifecycle import EnrollmentLifecycle, LifecycleEvent, LifecycleTrigger
from src.domain.services.reports import attendance_rate
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import AttendanceRecord, AttendanceStatus, Center, Cohort
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()

ACTION_PRESENT = "PRESENT"
ACTION_ABSENT = "ABSENT"


def derive_attendance_status(
    action: str,
    current_time: time,
    threshold: time,
    reason: str | None = None,
) -> AttendanceStatus:
    """Map a present/absent click to a stored status.

    PRESENT strictly before ``threshold`` stays PRESENT, at or after it is LATE.
    ABSENT with a non-blank reason becomes EXCUSED.
    """
    normalized = (action or "").strip().upper()
    if normalized == ACTION_PRESENT:
        return AttendanceStatus.PRESENT if current_time < threshold else AttendanceStatus.LATE
    if normalized == ACTION_ABSENT:
        if reason and reason.strip():
            return AttendanceStatus.EXCUSED
        return AttendanceStatus.ABSENT
    raise InvalidInputError("Invalid action. Must be 'PRESENT' or 'ABSENT'")


def threshold_for(center: Center | None, settings: Settings) -> time:
    if center is not None and center.on_time_threshold is not None:
        return center.on_time_threshold
    return settings.default_on_time_threshold


def _parse_status(value: str | AttendanceStatus) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidInputError(f"Invalid attendance status: {value}") from exc


@dataclass(slots=True)
class RecordedAttendance:
    record: AttendanceRecord
    created: bool


@dataclass(slots=True)
class AttendanceHistory:
    cohort_id: str
    cohort_name: str
    module_id: str
    module_name: str
    start_date: date
    end_date: date
    records: list[AttendanceRecord]
    overall_attendance_rate: float


class AttendanceService:
    def __init__(
        self,
        uow: UnitOfWork,
        scope: ScopeValidator,
        *,
        lifecycle: EnrollmentLifecycle | None = None,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.scope = scope
        self.clock = clock
        self.settings = settings or get_settings()
        self.lifecycle = lifecycle or EnrollmentLifecycle(
            uow, clock=clock, settings=self.settings
        )

    async def record(
        self, context: ActorContext, items: Sequence[AttendanceItem]
    ) -> list[RecordedAttendance]:
        """Record a batch; the batch commits or fails as one unit."""
        cohort = await self._writable_scope(context)
        results: list[RecordedAttendance] = []
        events: list[LifecycleEvent] = []

        for item in items:
            status = _parse_status(item.status)
            outcome = await self._record_one(
                context,
                cohort,
                enrollment_id=item.enrollment_id,
                module_id=item.module_id,
                session_date=item.session_date,
                status=status,
                remarks=item.remarks,
            )
            results.append(outcome)
            if outcome.created and status != AttendanceStatus.ABSENT:
                events.append(
                    LifecycleEvent(item.enrollment_id, LifecycleTrigger.ATTENDANCE_RECORDED)
                )

        await self.lifecycle.dispatch(events)
        return results

    async def record_today(
        self, context: ActorContext, item: TodayAttendanceItem
    ) -> RecordedAttendance:
        """Record a single click, deriving the status from the center's threshold."""
        cohort = await self._writable_scope(context)
        center = await self.uow.cohorts.get_center(context.center_id)
        status = derive_attendance_status(
            item.action,
            business_time(self.clock, self.settings.business_timezone),
            threshold_for(center, self.settings),
            item.reason,
        )
        session_date = item.session_date or business_today(
            self.clock, self.settings.business_timezone
        )
        remarks = item.reason.strip() if item.reason and item.reason.strip() else None

        outcome = await self._record_one(
            context,
            cohort,
            enrollment_id=item.enrollment_id,
            module_id=item.module_id,
            session_date=session_date,
            status=status,
            remarks=remarks,
        )
        if outcome.created and status != AttendanceStatus.ABSENT:
            await self.lifecycle.dispatch(
                [LifecycleEvent(item.enrollment_id, LifecycleTrigger.ATTENDANCE_RECORDED)]
            )
        return outcome

    async def history(
        self,
        context: ActorContext,
        module_id: str,
        start: date,
        end: date,
    ) -> AttendanceHistory:
        if start > end:
            raise InvalidInputError("start_date must not be after end_date")
        cohort = await self.scope.get_authoritative_scope(context)
        module = await self.scope.ensure_module_access(cohort, module_id)
        records = await self.uow.attendance.list_for_cohort(
            cohort.id, start=start, end=end, module_id=module.id
        )
        return AttendanceHistory(
            cohort_id=cohort.id,
            cohort_name=cohort.name,
            module_id=module.id,
            module_name=module.name,
            start_date=start,
            end_date=end,
            records=list(records),
            overall_attendance_rate=attendance_rate(record.status for record in records),
        )

    async def _writable_scope(self, context: ActorContext) -> Cohort:
        cohort = await self.scope.get_authoritative_scope(context)
        return await self.scope.validate_scope_access(context, cohort.id)

    async def _record_one(
        self,
        context: ActorContext,
        cohort: Cohort,
        *,
        enrollment_id: str,
        module_id: str,
        session_date: date,
        status: AttendanceStatus,
        remarks: str | None,
    ) -> RecordedAttendance:
        await self.scope.ensure_enrollment_access(context, enrollment_id)
        await self.scope.ensure_module_access(cohort, module_id)

        existing = await self.uow.attendance.find_by_natural_key(
            enrollment_id, module_id, session_date
        )
        if existing is not None:
            self._log_hit(existing, requested=status)
            return RecordedAttendance(record=existing, created=False)

        record, created = await self.uow.attendance.insert_if_absent(
            enrollment_id=enrollment_id,
            module_id=module_id,
            session_date=session_date,
            status=status,
            remarks=remarks,
            recorded_by=context.actor_id,
            created_at=self.clock(),
        )
        if not created:
            self._log_hit(record, requested=status)
            return RecordedAttendance(record=record, created=False)

        logger.info(
            "attendance_recorded",
            attendance_id=record.id,
            enrollment_id=enrollment_id,
            module_id=module_id,
            session_date=session_date.isoformat(),
            status=status.value,
            recorded_by=context.actor_id,
        )
        return RecordedAttendance(record=record, created=True)

    @staticmethod
    def _log_hit(record: AttendanceRecord, *, requested: AttendanceStatus) -> None:
        logger.info(
            "attendance_idempotent_hit",
            attendance_id=record.id,
            stored_status=record.status.value,
            requested_status=requested.value,
        )
