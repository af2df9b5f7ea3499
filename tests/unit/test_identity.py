from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.errors import NoActiveScopeError, UnresolvableActorError
from src.domain.services.identity import IdentityResolver
from src.domain.services.scope import CohortScopeValidator
from src.infrastructure.db.models import Cohort, CohortStatus, Facilitator
from src.infrastructure.repositories import UnitOfWork

from tests.utils import World


@pytest.fixture()
def resolver(uow: UnitOfWork, scope: CohortScopeValidator) -> IdentityResolver:
    return IdentityResolver(uow, scope)


async def test_resolves_by_id(resolver: IdentityResolver, world: World) -> None:
    context = await resolver.resolve_context(world.facilitator_id)

    assert context == world.context


async def test_resolves_by_email_case_insensitively(
    resolver: IdentityResolver, world: World
) -> None:
    context = await resolver.resolve_context(world.facilitator_email.upper())

    assert context.actor_id == world.facilitator_id
    assert context.scope_id == world.cohort_id


async def test_unknown_actor_is_unresolvable(resolver: IdentityResolver, world: World) -> None:
    with pytest.raises(UnresolvableActorError):
        await resolver.resolve_context("nobody@example.org")


async def test_actor_without_center_is_unresolvable(
    resolver: IdentityResolver, session: AsyncSession, world: World
) -> None:
    session.add(
        Facilitator(id="floating", email="floating@example.org", partner_id=world.partner_id)
    )
    await session.flush()

    with pytest.raises(UnresolvableActorError):
        await resolver.resolve_context("floating")


async def test_inactive_actor_is_unresolvable(
    resolver: IdentityResolver, session: AsyncSession, world: World
) -> None:
    facilitator = await session.get(Facilitator, world.facilitator_id)
    facilitator.is_active = False
    await session.flush()

    with pytest.raises(UnresolvableActorError):
        await resolver.resolve_context(world.facilitator_id)


async def test_center_without_active_cohort_denies(
    resolver: IdentityResolver, session: AsyncSession, world: World
) -> None:
    cohort = await session.get(Cohort, world.cohort_id)
    cohort.status = CohortStatus.CANCELLED
    await session.flush()

    with pytest.raises(NoActiveScopeError):
        await resolver.resolve_context(world.facilitator_id)
