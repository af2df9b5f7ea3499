from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.core.config import Settings
from src.domain import AttendanceItem, TodayAttendanceItem
from src.domain.errors import AccessDeniedError, InvalidInputError, NotFoundError
from src.domain.services.attendance import AttendanceService
from src.domain.services.scope import CohortScopeValidator
from src.infrastructure.db.models import (
    AttendanceRecord,
    AttendanceStatus,
    Enrollment,
    EnrollmentStatus,
)
from src.infrastructure.repositories import UnitOfWork

from tests.utils import FrozenClock, RecordingSink, World, add_attendance


@pytest.fixture()
def service(
    uow: UnitOfWork, scope: CohortScopeValidator, clock: FrozenClock, settings: Settings
) -> AttendanceService:
    return AttendanceService(uow, scope, clock=clock, settings=settings)


def _item(world: World, index: int = 0, status: str = "PRESENT", **overrides) -> AttendanceItem:
    values = {
        "enrollment_id": world.enrollment_ids[index],
        "module_id": world.module_ids[0],
        "session_date": world.today,
        "status": status,
    }
    values.update(overrides)
    return AttendanceItem(**values)


async def _count_records(session_factory: async_sessionmaker[AsyncSession]) -> int:
    async with session_factory() as fresh:
        return await fresh.scalar(select(func.count(AttendanceRecord.id)))


async def test_first_attendance_activates_enrollment(
    service: AttendanceService, uow: UnitOfWork, sink: RecordingSink, world: World
) -> None:
    async with uow:
        [result] = await service.record(world.context, [_item(world)])
        assert sink.published == []

    assert result.created is True
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.recorded_by == world.facilitator_id
    enrollment = await uow.enrollments.get(world.enrollment_ids[0])
    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert [(n.old_status, n.new_status) for n in sink.published] == [("ENROLLED", "ACTIVE")]


async def test_repeat_submission_returns_stored_record(
    service: AttendanceService,
    uow: UnitOfWork,
    world: World,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with uow:
        [first] = await service.record(world.context, [_item(world)])
    async with uow:
        [second] = await service.record(world.context, [_item(world, status="ABSENT")])

    assert second.created is False
    assert second.record.id == first.record.id
    assert second.record.status == AttendanceStatus.PRESENT
    assert await _count_records(session_factory) == 1


async def test_created_at_comes_from_injected_clock(
    service: AttendanceService,
    uow: UnitOfWork,
    clock: FrozenClock,
    world: World,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with uow:
        [result] = await service.record(world.context, [_item(world)])

    async with session_factory() as fresh:
        stored = await fresh.get(AttendanceRecord, result.record.id)
    # SQLite hands back naive datetimes
    assert stored.created_at.replace(tzinfo=None) == clock.now.replace(tzinfo=None)


async def test_absence_keeps_enrollment_enrolled(
    service: AttendanceService, uow: UnitOfWork, sink: RecordingSink, world: World
) -> None:
    async with uow:
        [result] = await service.record(world.context, [_item(world, status="ABSENT")])

    assert result.created is True
    enrollment = await uow.enrollments.get(world.enrollment_ids[0])
    assert enrollment.status == EnrollmentStatus.ENROLLED
    assert sink.published == []


async def test_excused_counts_as_attendance(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        await service.record(world.context, [_item(world, status="EXCUSED", remarks="funeral")])

    enrollment = await uow.enrollments.get(world.enrollment_ids[0])
    assert enrollment.status == EnrollmentStatus.ACTIVE


async def test_other_tenant_enrollment_is_denied(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    item = _item(world, enrollment_id=world.other_enrollment_id)

    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.record(world.context, [item])


async def test_other_program_module_is_denied(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.record(world.context, [_item(world, module_id=world.other_module_id)])


async def test_unknown_enrollment_is_not_found(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(NotFoundError):
        async with uow:
            await service.record(world.context, [_item(world, enrollment_id="missing")])


async def test_invalid_status_is_rejected(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(InvalidInputError):
        async with uow:
            await service.record(world.context, [_item(world, status="TARDY")])


async def test_failed_batch_writes_nothing(
    service: AttendanceService,
    uow: UnitOfWork,
    sink: RecordingSink,
    world: World,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    items = [_item(world), _item(world, enrollment_id=world.other_enrollment_id)]

    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.record(world.context, items)

    assert await _count_records(session_factory) == 0
    assert sink.published == []
    async with session_factory() as fresh:
        enrollment = await fresh.get(Enrollment, world.enrollment_ids[0])
    assert enrollment.status == EnrollmentStatus.ENROLLED


async def test_concurrent_identical_submissions_store_one_row(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FrozenClock,
    settings: Settings,
    world: World,
) -> None:
    async def submit() -> tuple[str, bool]:
        async with session_factory() as own_session:
            uow = UnitOfWork(own_session)
            scope = CohortScopeValidator(uow, clock=clock, settings=settings)
            async with uow:
                [result] = await AttendanceService(
                    uow, scope, clock=clock, settings=settings
                ).record(world.context, [_item(world)])
            return result.record.id, result.created

    outcomes = await asyncio.gather(submit(), submit())

    assert len({record_id for record_id, _ in outcomes}) == 1
    assert sorted(created for _, created in outcomes) == [False, True]
    assert await _count_records(session_factory) == 1


async def test_mark_present_before_threshold(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    item = TodayAttendanceItem(
        enrollment_id=world.enrollment_ids[0], module_id=world.module_ids[0], action="PRESENT"
    )

    async with uow:
        result = await service.record_today(world.context, item)

    assert result.created is True
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.session_date == world.today


async def test_mark_present_at_threshold_is_late(
    service: AttendanceService, uow: UnitOfWork, clock: FrozenClock, world: World
) -> None:
    clock.set_local(9, 0)
    item = TodayAttendanceItem(
        enrollment_id=world.enrollment_ids[1], module_id=world.module_ids[0], action="PRESENT"
    )

    async with uow:
        result = await service.record_today(world.context, item)

    assert result.record.status == AttendanceStatus.LATE
    enrollment = await uow.enrollments.get(world.enrollment_ids[1])
    assert enrollment.status == EnrollmentStatus.ACTIVE


async def test_mark_absent_with_reason_is_excused(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    item = TodayAttendanceItem(
        enrollment_id=world.enrollment_ids[0],
        module_id=world.module_ids[0],
        action="ABSENT",
        reason="  transport strike ",
    )

    async with uow:
        result = await service.record_today(world.context, item)

    assert result.record.status == AttendanceStatus.EXCUSED
    assert result.record.remarks == "transport strike"


async def test_second_click_does_not_overwrite(
    service: AttendanceService, uow: UnitOfWork, clock: FrozenClock, world: World
) -> None:
    present = TodayAttendanceItem(
        enrollment_id=world.enrollment_ids[0], module_id=world.module_ids[0], action="PRESENT"
    )
    async with uow:
        first = await service.record_today(world.context, present)

    clock.set_local(10, 0)
    absent = TodayAttendanceItem(
        enrollment_id=world.enrollment_ids[0], module_id=world.module_ids[0], action="ABSENT"
    )
    async with uow:
        second = await service.record_today(world.context, absent)

    assert second.created is False
    assert second.record.id == first.record.id
    assert second.record.status == AttendanceStatus.PRESENT


async def test_history_lists_records_in_range(
    service: AttendanceService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    await add_attendance(session, world.enrollment_ids[0], world.module_ids[0], world.today)
    await add_attendance(
        session,
        world.enrollment_ids[1],
        world.module_ids[0],
        world.today - timedelta(days=1),
        AttendanceStatus.ABSENT,
    )
    await add_attendance(
        session, world.enrollment_ids[0], world.module_ids[0], world.today - timedelta(days=40)
    )
    await add_attendance(session, world.enrollment_ids[0], world.module_ids[1], world.today)

    async with uow:
        history = await service.history(
            world.context, world.module_ids[0], world.today - timedelta(days=7), world.today
        )

    assert history.cohort_id == world.cohort_id
    assert history.module_name == "Intro"
    assert len(history.records) == 2
    assert history.overall_attendance_rate == 50.0


async def test_history_rejects_inverted_range(
    service: AttendanceService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(InvalidInputError):
        async with uow:
            await service.history(
                world.context, world.module_ids[0], world.today, world.today - timedelta(days=1)
            )
