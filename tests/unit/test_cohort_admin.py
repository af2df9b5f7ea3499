from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.config import Settings
from src.domain.errors import (
    AccessDeniedError,
    AmbiguousScopeError,
    InvalidInputError,
    NotFoundError,
)
from src.domain.services.cohorts import CohortAdminService
from src.infrastructure.db.models import Cohort, CohortStatus, EnrollmentStatus
from src.infrastructure.repositories import UnitOfWork

from tests.utils import FrozenClock, RecordingSink, World


@pytest.fixture()
def service(uow: UnitOfWork, clock: FrozenClock, settings: Settings) -> CohortAdminService:
    return CohortAdminService(uow, clock=clock, settings=settings)


async def test_closing_completes_open_enrollments(
    service: CohortAdminService, uow: UnitOfWork, sink: RecordingSink, world: World
) -> None:
    async with uow:
        results = await service.close_cohort(world.cohort_id)

    cohort = await uow.cohorts.get(world.cohort_id)
    assert cohort.status == CohortStatus.COMPLETED
    assert {r.new_status for r in results} == {EnrollmentStatus.COMPLETED}
    assert len(sink.published) == 2


async def test_closing_twice_is_a_no_op(
    service: CohortAdminService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        await service.close_cohort(world.cohort_id)
    async with uow:
        assert await service.close_cohort(world.cohort_id) == []


async def test_closing_unknown_cohort_is_not_found(
    service: CohortAdminService, uow: UnitOfWork
) -> None:
    with pytest.raises(NotFoundError):
        await service.close_cohort("missing")


async def test_extend_reopens_completed_cohort(
    service: CohortAdminService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        await service.close_cohort(world.cohort_id)

    new_end = world.today + timedelta(days=90)
    async with uow:
        results = await service.extend_cohort(world.cohort_id, new_end)

    cohort = await uow.cohorts.get(world.cohort_id)
    assert cohort.status == CohortStatus.ACTIVE
    assert cohort.end_date == new_end
    assert {r.new_status for r in results} == {EnrollmentStatus.ACTIVE}


async def test_extend_requires_later_end_date(
    service: CohortAdminService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(InvalidInputError):
        await service.extend_cohort(world.cohort_id, world.today + timedelta(days=60))


async def test_reopen_refused_when_center_has_another_active_cohort(
    service: CohortAdminService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    async with uow:
        await service.close_cohort(world.cohort_id)
    session.add(
        Cohort(
            program_id=world.program_id,
            center_id=world.center_id,
            name="S1 next term",
            start_date=world.today,
            end_date=world.today + timedelta(days=60),
            status=CohortStatus.ACTIVE,
        )
    )
    await session.flush()

    with pytest.raises(AmbiguousScopeError):
        await service.extend_cohort(world.cohort_id, world.today + timedelta(days=90))


async def test_cancelled_cohort_cannot_be_extended(
    service: CohortAdminService, session: AsyncSession, world: World
) -> None:
    cohort = await session.get(Cohort, world.cohort_id)
    cohort.status = CohortStatus.CANCELLED
    await session.flush()

    with pytest.raises(InvalidInputError):
        await service.extend_cohort(world.cohort_id, world.today + timedelta(days=90))


async def test_verification_by_another_officer(
    service: CohortAdminService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        enrollment = await service.verify_enrollment(world.enrollment_ids[0], "me-officer-1")

    assert enrollment.is_verified is True
    assert enrollment.verified_by == "me-officer-1"
    assert enrollment.verified_at is not None


async def test_creator_cannot_verify_own_enrollment(
    service: CohortAdminService, world: World
) -> None:
    with pytest.raises(AccessDeniedError):
        await service.verify_enrollment(world.enrollment_ids[0], world.facilitator_id)
