from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from src.infrastructure.db.models import Enrollment, EnrollmentStatus, Participant


@dataclass
class EnrollmentRepository:
    session: AsyncSession

    async def get(self, enrollment_id: str) -> Enrollment | None:
        return await self.session.get(Enrollment, enrollment_id)

    async def find(self, participant_id: str, cohort_id: str) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.participant_id == participant_id,
            Enrollment.cohort_id == cohort_id,
        )
        return await self.session.scalar(stmt)

    async def list_for_cohort(
        self,
        cohort_id: str,
        *,
        statuses: Sequence[EnrollmentStatus] | None = None,
    ) -> Sequence[Enrollment]:
        stmt = select(Enrollment).where(Enrollment.cohort_id == cohort_id)
        if statuses:
            stmt = stmt.where(Enrollment.status.in_(statuses))
        result = await self.session.scalars(stmt.order_by(Enrollment.enrollment_date))
        return result.all()

    async def list_with_participants(
        self, cohort_id: str
    ) -> Sequence[tuple[Enrollment, Participant]]:
        stmt = (
            select(Enrollment, Participant)
            .join(Participant, Participant.id == Enrollment.participant_id)
            .where(Enrollment.cohort_id == cohort_id)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def count_by_status(self, cohort_id: str) -> dict[EnrollmentStatus, int]:
        stmt = (
            select(Enrollment.status, func.count(Enrollment.id))
            .where(Enrollment.cohort_id == cohort_id)
            .group_by(Enrollment.status)
        )
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def add(self, enrollment: Enrollment) -> Enrollment:
        self.session.add(enrollment)
        await self.session.flush()
        return enrollment
