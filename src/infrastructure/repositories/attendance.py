"""Attendance persistence, including the natural-key insert used by recording."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from src.infrastructure.db.models import (
    AttendanceRecord,
    AttendanceStatus,
    Enrollment,
)

logger = structlog.get_logger()

NATURAL_KEY = ("enrollment_id", "module_id", "session_date")

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class AttendanceRepository:
    session: AsyncSession

    async def find_by_natural_key(
        self, enrollment_id: str, module_id: str, session_date: date
    ) -> AttendanceRecord | None:
        stmt = select(AttendanceRecord).where(
            AttendanceRecord.enrollment_id == enrollment_id,
            AttendanceRecord.module_id == module_id,
            AttendanceRecord.session_date == session_date,
        )
        return await self.session.scalar(stmt)

    async def insert_if_absent(
        self,
        *,
        enrollment_id: str,
        module_id: str,
        session_date: date,
        status: AttendanceStatus,
        remarks: str | None,
        recorded_by: str | None,
        created_at: datetime | None = None,
    ) -> tuple[AttendanceRecord, bool]:
        """Insert a record unless one already exists for the natural key.

        Returns the stored record and whether this call created it. When a
        concurrent writer wins the race the uniqueness constraint swallows our
        insert and the winner's row is returned with ``created=False``.
        """
        dialect = self.session.get_bind().dialect.name
        try:
            insert = _DIALECT_INSERTS[dialect]
        except KeyError as exc:
            raise RuntimeError(f"Unsupported database dialect: {dialect}") from exc

        values = {
            "enrollment_id": enrollment_id,
            "module_id": module_id,
            "session_date": session_date,
            "status": status,
            "remarks": remarks,
            "recorded_by": recorded_by,
        }
        if created_at is not None:
            values["created_at"] = created_at
        stmt = (
            insert(AttendanceRecord.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=list(NATURAL_KEY))
        )
        result = await self.session.execute(stmt)
        created = result.rowcount == 1

        record = await self.find_by_natural_key(enrollment_id, module_id, session_date)
        if record is None:  # pragma: no cover - constraint guarantees a row
            raise RuntimeError("Attendance row vanished after insert")
        if not created:
            logger.info(
                "attendance_insert_conflict",
                enrollment_id=enrollment_id,
                module_id=module_id,
                session_date=session_date.isoformat(),
            )
        return record, created

    async def latest_session_date(self, enrollment_id: str) -> date | None:
        stmt = select(func.max(AttendanceRecord.session_date)).where(
            AttendanceRecord.enrollment_id == enrollment_id
        )
        return await self.session.scalar(stmt)

    async def latest_session_dates(self, enrollment_ids: Sequence[str]) -> dict[str, date]:
        if not enrollment_ids:
            return {}
        stmt = (
            select(AttendanceRecord.enrollment_id, func.max(AttendanceRecord.session_date))
            .where(AttendanceRecord.enrollment_id.in_(enrollment_ids))
            .group_by(AttendanceRecord.enrollment_id)
        )
        result = await self.session.execute(stmt)
        return {enrollment_id: latest for enrollment_id, latest in result.all()}

    async def statuses_by_enrollment(
        self, enrollment_ids: Sequence[str]
    ) -> dict[str, list[AttendanceStatus]]:
        grouped: dict[str, list[AttendanceStatus]] = {eid: [] for eid in enrollment_ids}
        if not enrollment_ids:
            return grouped
        stmt = select(AttendanceRecord.enrollment_id, AttendanceRecord.status).where(
            AttendanceRecord.enrollment_id.in_(enrollment_ids)
        )
        result = await self.session.execute(stmt)
        for enrollment_id, status in result.all():
            grouped[enrollment_id].append(status)
        return grouped

    async def list_for_cohort(
        self,
        cohort_id: str,
        *,
        start: date | None = None,
        end: date | None = None,
        module_id: str | None = None,
    ) -> Sequence[AttendanceRecord]:
        stmt = (
            select(AttendanceRecord)
            .join(Enrollment, Enrollment.id == AttendanceRecord.enrollment_id)
            .where(Enrollment.cohort_id == cohort_id)
        )
        if start is not None:
            stmt = stmt.where(AttendanceRecord.session_date >= start)
        if end is not None:
            stmt = stmt.where(AttendanceRecord.session_date <= end)
        if module_id is not None:
            stmt = stmt.where(AttendanceRecord.module_id == module_id)
        stmt = stmt.order_by(AttendanceRecord.session_date, AttendanceRecord.created_at)
        result = await self.session.scalars(stmt)
        return result.all()
