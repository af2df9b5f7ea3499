"""Dashboard aggregates derived from attendance, scores and enrollments."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from src.core.clock import Clock, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.models import ActorContext
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import AttendanceStatus, Cohort, EnrollmentStatus
from src.infrastructure.repositories import UnitOfWork

_RATIO_PLACES = Decimal("0.0001")
_PERCENT_PLACES = Decimal("0.01")


def percentage(part: int, whole: int) -> float:
    """``part / whole`` as a percentage with two decimals, rounded half-up."""
    if whole <= 0:
        return 0.0
    ratio = (Decimal(part) / Decimal(whole)).quantize(_RATIO_PLACES, rounding=ROUND_HALF_UP)
    return float((ratio * 100).quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP))


def attendance_rate(statuses: Iterable[AttendanceStatus]) -> float:
    """Share of records counted as attended (PRESENT, LATE or EXCUSED)."""
    attended = AttendanceStatus.attended_statuses()
    total = 0
    hits = 0
    for status in statuses:
        total += 1
        if status in attended:
            hits += 1
    return percentage(hits, total)


def week_bounds(day: date) -> tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def change_text(change: float) -> str:
    if change > 0:
        return f"+{change:.1f}% from last week"
    if change < 0:
        return f"{change:.1f}% from last week"
    return "No change from last week"


@dataclass(slots=True)
class TodayStats:
    cohort_id: str
    module_id: str
    session_date: date
    total_enrolled: int
    present: int
    late: int
    absent: int
    excused: int
    not_marked: int
    attendance_rate: float


@dataclass(slots=True)
class WeeklyTrend:
    this_week_start: date
    this_week_end: date
    last_week_start: date
    last_week_end: date
    this_week_rate: float
    last_week_rate: float
    change: float
    change_text: str
    this_week_records: int
    last_week_records: int


@dataclass(slots=True)
class DashboardSummary:
    cohort_id: str
    cohort_name: str
    total_enrollments: int
    active_participants: int
    total_modules: int
    average_score: float | None
    module_completion_rate: float
    completed_modules: int
    weekly: WeeklyTrend
    status_counts: dict[str, int] = field(default_factory=dict)


class ReportService:
    def __init__(
        self,
        uow: UnitOfWork,
        scope: ScopeValidator,
        *,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.scope = scope
        self.clock = clock
        self.settings = settings or get_settings()

    def _today(self) -> date:
        return business_today(self.clock, self.settings.business_timezone)

    async def today_stats(self, context: ActorContext, module_id: str) -> TodayStats:
        cohort = await self.scope.get_authoritative_scope(context)
        module = await self.scope.ensure_module_access(cohort, module_id)
        today = self._today()

        enrollments = await self.uow.enrollments.list_for_cohort(
            cohort.id, statuses=EnrollmentStatus.open_statuses()
        )
        open_ids = {enrollment.id for enrollment in enrollments}
        records = [
            record
            for record in await self.uow.attendance.list_for_cohort(
                cohort.id, start=today, end=today, module_id=module.id
            )
            if record.enrollment_id in open_ids
        ]
        counts = Counter(record.status for record in records)

        return TodayStats(
            cohort_id=cohort.id,
            module_id=module.id,
            session_date=today,
            total_enrolled=len(open_ids),
            present=counts[AttendanceStatus.PRESENT],
            late=counts[AttendanceStatus.LATE],
            absent=counts[AttendanceStatus.ABSENT],
            excused=counts[AttendanceStatus.EXCUSED],
            not_marked=len(open_ids) - len({record.enrollment_id for record in records}),
            attendance_rate=attendance_rate(record.status for record in records),
        )

    async def weekly_trend(self, context: ActorContext) -> WeeklyTrend:
        cohort = await self.scope.get_authoritative_scope(context)
        return await self._weekly_trend(cohort)

    async def dashboard_summary(self, context: ActorContext) -> DashboardSummary:
        cohort = await self.scope.get_authoritative_scope(context)

        status_counts = await self.uow.enrollments.count_by_status(cohort.id)
        modules = await self.uow.modules.list_for_program(cohort.program_id)
        open_enrollments = await self.uow.enrollments.list_for_cohort(
            cohort.id, statuses=EnrollmentStatus.open_statuses()
        )
        scored = await self.uow.scores.scored_pairs(cohort.id)

        # A module counts as complete once every open enrollment has a score for it
        completed_modules = 0
        if open_enrollments:
            for module in modules:
                if all((e.id, module.id) in scored for e in open_enrollments):
                    completed_modules += 1

        average = await self.uow.scores.average_for_cohort(cohort.id)
        return DashboardSummary(
            cohort_id=cohort.id,
            cohort_name=cohort.name,
            total_enrollments=sum(status_counts.values()),
            active_participants=len(open_enrollments),
            total_modules=len(modules),
            average_score=round(average, 2) if average is not None else None,
            module_completion_rate=percentage(completed_modules, len(modules)),
            completed_modules=completed_modules,
            weekly=await self._weekly_trend(cohort),
            status_counts={status.value: count for status, count in status_counts.items()},
        )

    async def _weekly_trend(self, cohort: Cohort) -> WeeklyTrend:
        this_start, this_end = week_bounds(self._today())
        last_start, last_end = this_start - timedelta(weeks=1), this_end - timedelta(weeks=1)

        this_week = await self.uow.attendance.list_for_cohort(
            cohort.id, start=this_start, end=this_end
        )
        last_week = await self.uow.attendance.list_for_cohort(
            cohort.id, start=last_start, end=last_end
        )
        this_rate = attendance_rate(record.status for record in this_week)
        last_rate = attendance_rate(record.status for record in last_week)
        change = float(
            (Decimal(str(this_rate)) - Decimal(str(last_rate))).quantize(_PERCENT_PLACES)
        )

        return WeeklyTrend(
            this_week_start=this_start,
            this_week_end=this_end,
            last_week_start=last_start,
            last_week_end=last_end,
            this_week_rate=this_rate,
            last_week_rate=last_rate,
            change=change,
            change_text=change_text(change),
            this_week_records=len(this_week),
            last_week_records=len(last_week),
        )
