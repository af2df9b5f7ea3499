from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from src.infrastructure.repositories.attendance import AttendanceRepository
from src.infrastructure.repositories.enrollments import EnrollmentRepository
from src.infrastructure.repositories.scores import ScoreRepository
from src.infrastructure.repositories.tenancy import (
    CohortRepository,
    FacilitatorRepository,
    ParticipantRepository,
    TrainingModuleRepository,
)

if TYPE_CHECKING:
    from src.domain.services.notifications import LifecycleNotification, NotificationSink

logger = structlog.get_logger()


class UnitOfWork:
    """Transaction boundary shared by every service handling one request.

    Leaving the ``async with`` block commits; any exception rolls back. Lifecycle
    notifications collected during the block are published only after the
    commit succeeds.
    """

    def __init__(self, session: AsyncSession, notifier: NotificationSink | None = None) -> None:
        self.session = session
        self.facilitators = FacilitatorRepository(session)
        self.cohorts = CohortRepository(session)
        self.modules = TrainingModuleRepository(session)
        self.participants = ParticipantRepository(session)
        self.enrollments = EnrollmentRepository(session)
        self.attendance = AttendanceRepository(session)
        self.scores = ScoreRepository(session)
        self._notifier = notifier
        self._pending: list[LifecycleNotification] = []

    async def __aenter__(self) -> UnitOfWork:
        logger.debug("uow_enter")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            await self.commit()
        logger.debug("uow_exit", exc_type=str(exc_type) if exc_type else None)

    def collect(self, notification: LifecycleNotification) -> None:
        self._pending.append(notification)

    @property
    def pending_notifications(self) -> tuple[LifecycleNotification, ...]:
        return tuple(self._pending)

    async def flush(self) -> None:
        await self.session.flush()

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction; leaving it with an exception undoes only its own writes."""
        return self.session.begin_nested()

    async def commit(self) -> None:
        await self.session.commit()
        logger.debug("uow_commit", notifications=len(self._pending))
        pending, self._pending = self._pending, []
        if self._notifier is None:
            return
        for notification in pending:
            await asyncio.to_thread(self._notifier.publish, notification)

    async def rollback(self) -> None:
        await self.session.rollback()
        self._pending.clear()
        logger.debug("uow_rollback")
