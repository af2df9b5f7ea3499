"""Read-side repositories for tenancy entities (facilitators, centers, cohorts, modules)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from src.infrastructure.db.models import (
    Center,
    Cohort,
    CohortStatus,
    Facilitator,
    Participant,
    Program,
    TrainingModule,
)


@dataclass
class FacilitatorRepository:
    session: AsyncSession

    async def get(self, facilitator_id: str) -> Facilitator | None:
        return await self.session.get(Facilitator, facilitator_id)

    async def get_by_email(self, email: str) -> Facilitator | None:
        stmt = select(Facilitator).where(func.lower(Facilitator.email) == email.strip().lower())
        return await self.session.scalar(stmt)


@dataclass
class CohortRepository:
    session: AsyncSession

    async def get(self, cohort_id: str) -> Cohort | None:
        return await self.session.get(Cohort, cohort_id)

    async def list_active_for_center(self, center_id: str) -> Sequence[Cohort]:
        # Intentionally unbounded: callers must see every match to detect ambiguity
        stmt = (
            select(Cohort)
            .where(Cohort.center_id == center_id, Cohort.status == CohortStatus.ACTIVE)
            .order_by(Cohort.start_date)
        )
        result = await self.session.scalars(stmt)
        return result.all()

    async def get_center(self, center_id: str) -> Center | None:
        return await self.session.get(Center, center_id)

    async def get_program(self, program_id: str) -> Program | None:
        return await self.session.get(Program, program_id)


@dataclass
class TrainingModuleRepository:
    session: AsyncSession

    async def get(self, module_id: str) -> TrainingModule | None:
        return await self.session.get(TrainingModule, module_id)

    async def add(self, module: TrainingModule) -> TrainingModule:
        self.session.add(module)
        await self.session.flush()
        return module

    async def list_for_program(self, program_id: str) -> Sequence[TrainingModule]:
        stmt = (
            select(TrainingModule)
            .where(TrainingModule.program_id == program_id)
            .order_by(TrainingModule.sequence, TrainingModule.name)
        )
        result = await self.session.scalars(stmt)
        return result.all()


@dataclass
class ParticipantRepository:
    session: AsyncSession

    async def get(self, participant_id: str) -> Participant | None:
        return await self.session.get(Participant, participant_id)
