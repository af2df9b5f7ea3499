from __future__ import annotations

import dataclasses
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.errors import AccessDeniedError, InvalidInputError, NotFoundError
from src.domain.services.modules import TrainingModuleService
from src.domain.services.scope import CohortScopeValidator
from src.infrastructure.db.models import Cohort
from src.infrastructure.repositories import UnitOfWork

from tests.utils import FrozenClock, World


@pytest.fixture()
def service(
    uow: UnitOfWork, scope: CohortScopeValidator, clock: FrozenClock
) -> TrainingModuleService:
    return TrainingModuleService(uow, scope, clock=clock)


async def _set_end_date(session: AsyncSession, world: World, days_from_today: int) -> None:
    cohort = await session.get(Cohort, world.cohort_id)
    cohort.end_date = world.today + timedelta(days=days_from_today)
    await session.flush()


async def test_create_module_attaches_to_cohort_program(
    service: TrainingModuleService, uow: UnitOfWork, clock: FrozenClock, world: World
) -> None:
    async with uow:
        module = await service.create_module(
            world.context, "  Budgeting  ", description="Household budgets", sequence=3
        )

    assert module.program_id == world.program_id
    assert module.name == "Budgeting"
    assert module.description == "Household budgets"
    assert module.sequence == 3
    assert module.created_by == world.facilitator_id
    assert module.created_at == clock()


async def test_create_module_on_end_date_is_allowed(
    service: TrainingModuleService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    await _set_end_date(session, world, 0)

    async with uow:
        module = await service.create_module(world.context, "Wrap-up")

    assert module.program_id == world.program_id


async def test_create_module_after_end_date_is_denied(
    service: TrainingModuleService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    await _set_end_date(session, world, -1)

    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.create_module(world.context, "Too late")


async def test_blank_name_is_rejected(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(InvalidInputError):
        async with uow:
            await service.create_module(world.context, "   ")


async def test_creator_can_edit_module(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        module = await service.create_module(world.context, "Draft")
    async with uow:
        updated = await service.update_module(world.context, module.id, name="Final", sequence=4)

    assert updated.id == module.id
    assert updated.name == "Final"
    assert updated.sequence == 4
    assert updated.description is None


async def test_edit_after_end_date_is_denied(
    service: TrainingModuleService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    async with uow:
        module = await service.create_module(world.context, "Draft")
    await _set_end_date(session, world, -1)

    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.update_module(world.context, module.id, name="Changed")


async def test_edit_on_end_date_is_allowed(
    service: TrainingModuleService, uow: UnitOfWork, session: AsyncSession, world: World
) -> None:
    async with uow:
        module = await service.create_module(world.context, "Draft")
    await _set_end_date(session, world, 0)

    async with uow:
        updated = await service.update_module(world.context, module.id, description="Last day")

    assert updated.description == "Last day"


async def test_only_creator_can_edit(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    async with uow:
        module = await service.create_module(world.context, "Draft")
    colleague = dataclasses.replace(world.context, actor_id="facilitator-3")

    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.update_module(colleague, module.id, name="Hijacked")


async def test_seeded_module_without_creator_is_read_only(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.update_module(world.context, world.module_ids[0], name="Renamed")


async def test_module_of_other_program_is_denied(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(AccessDeniedError):
        async with uow:
            await service.update_module(world.context, world.other_module_id, name="Renamed")


async def test_unknown_module_is_not_found(
    service: TrainingModuleService, uow: UnitOfWork, world: World
) -> None:
    with pytest.raises(NotFoundError):
        async with uow:
            await service.update_module(world.context, "missing-module", name="Renamed")
