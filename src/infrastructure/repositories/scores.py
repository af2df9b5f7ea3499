from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from src.infrastructure.db.models import Enrollment, ScoreRecord


@dataclass
class ScoreRepository:
    session: AsyncSession

    async def add(self, record: ScoreRecord) -> ScoreRecord:
        self.session.add(record)
        await self.session.flush()
        return record

    async def average_for_cohort(self, cohort_id: str) -> float | None:
        stmt = (
            select(func.avg(ScoreRecord.score_value))
            .join(Enrollment, Enrollment.id == ScoreRecord.enrollment_id)
            .where(Enrollment.cohort_id == cohort_id)
        )
        value = await self.session.scalar(stmt)
        return float(value) if value is not None else None

    async def scored_pairs(self, cohort_id: str) -> set[tuple[str, str]]:
        """Return every (enrollment_id, module_id) that has at least one score."""
        stmt = (
            select(ScoreRecord.enrollment_id, ScoreRecord.module_id)
            .join(Enrollment, Enrollment.id == ScoreRecord.enrollment_id)
            .where(Enrollment.cohort_id == cohort_id)
            .distinct()
        )
        result = await self.session.execute(stmt)
        return {(enrollment_id, module_id) for enrollment_id, module_id in result.all()}
