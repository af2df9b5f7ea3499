from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.config import Settings
from src.domain.errors import AccessDeniedError
from src.domain.services.reports import (
    ReportService,
    attendance_rate,
    change_text,
    percentage,
    week_bounds,
)
from src.domain.services.scope import CohortScopeValidator
from src.infrastructure.db.models import AssessmentType, AttendanceStatus, ScoreRecord
from src.infrastructure.repositories import UnitOfWork

from tests.utils import FrozenClock, World, add_attendance


@pytest.fixture()
def service(
    uow: UnitOfWork, scope: CohortScopeValidator, clock: FrozenClock, settings: Settings
) -> ReportService:
    return ReportService(uow, scope, clock=clock, settings=settings)


def test_percentage_rounds_half_up() -> None:
    assert percentage(1, 3) == 33.33
    assert percentage(2, 3) == 66.67
    assert percentage(1, 8) == 12.5
    assert percentage(0, 0) == 0.0


def test_excused_counts_towards_rate() -> None:
    statuses = [AttendanceStatus.EXCUSED, AttendanceStatus.LATE, AttendanceStatus.ABSENT]

    assert attendance_rate(statuses) == 66.67
    assert attendance_rate([]) == 0.0


def test_week_runs_monday_to_sunday() -> None:
    assert week_bounds(date(2026, 3, 11)) == (date(2026, 3, 9), date(2026, 3, 15))
    assert week_bounds(date(2026, 3, 15)) == (date(2026, 3, 9), date(2026, 3, 15))


def test_change_text() -> None:
    assert change_text(12.345) == "+12.3% from last week"
    assert change_text(-50.0) == "-50.0% from last week"
    assert change_text(0.0) == "No change from last week"


async def test_today_stats_counts_unmarked(
    service: ReportService, session: AsyncSession, world: World
) -> None:
    await add_attendance(session, world.enrollment_ids[0], world.module_ids[0], world.today)

    stats = await service.today_stats(world.context, world.module_ids[0])

    assert stats.session_date == world.today
    assert stats.total_enrolled == 2
    assert stats.present == 1
    assert stats.not_marked == 1
    assert stats.attendance_rate == 100.0


async def test_today_stats_rejects_foreign_module(service: ReportService, world: World) -> None:
    with pytest.raises(AccessDeniedError):
        await service.today_stats(world.context, world.other_module_id)


async def test_weekly_trend_compares_calendar_weeks(
    service: ReportService, session: AsyncSession, world: World
) -> None:
    tuesday = date(2026, 3, 10)
    await add_attendance(session, world.enrollment_ids[0], world.module_ids[0], tuesday)
    await add_attendance(
        session, world.enrollment_ids[1], world.module_ids[0], tuesday, AttendanceStatus.ABSENT
    )
    await add_attendance(
        session, world.enrollment_ids[0], world.module_ids[0], tuesday - timedelta(days=7)
    )

    trend = await service.weekly_trend(world.context)

    assert trend.this_week_rate == 50.0
    assert trend.last_week_rate == 100.0
    assert trend.change == -50.0
    assert trend.change_text == "-50.0% from last week"
    assert (trend.this_week_records, trend.last_week_records) == (2, 1)


async def test_dashboard_summary(
    service: ReportService, session: AsyncSession, world: World, clock: FrozenClock
) -> None:
    for enrollment_id, value in zip(world.enrollment_ids, (80.0, 60.0), strict=True):
        session.add(
            ScoreRecord(
                enrollment_id=enrollment_id,
                module_id=world.module_ids[0],
                assessment_type=AssessmentType.QUIZ,
                score_value=value,
                max_score=100.0,
                recorded_by=world.facilitator_id,
                recorded_at=clock(),
            )
        )
    await session.flush()

    summary = await service.dashboard_summary(world.context)

    assert summary.total_enrollments == 2
    assert summary.active_participants == 2
    assert summary.total_modules == 2
    assert summary.average_score == 70.0
    assert summary.completed_modules == 1
    assert summary.module_completion_rate == 50.0
    assert summary.status_counts == {"ENROLLED": 2}
