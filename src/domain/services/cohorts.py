"""Cohort administration for M&E officers and admins.

These operations sit outside a facilitator's scope: the caller's role is
checked at the HTTP layer and the cohort is addressed directly by id.
"""

from __future__ import annotations

from datetime import date

import structlog
from src.core.clock import Clock, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.errors import (
    AccessDeniedError,
    AmbiguousScopeError,
    InvalidInputError,
    NotFoundError,
)
from src.domain.services.lifecycle import EnrollmentLifecycle, TransitionResult
from src.infrastructure.db.models import Cohort, CohortStatus, Enrollment
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()


class CohortAdminService:
    def __init__(
        self,
        uow: UnitOfWork,
        *,
        lifecycle: EnrollmentLifecycle | None = None,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.clock = clock
        self.settings = settings or get_settings()
        self.lifecycle = lifecycle or EnrollmentLifecycle(
            uow, clock=clock, settings=self.settings
        )

    def _today(self) -> date:
        return business_today(self.clock, self.settings.business_timezone)

    async def _load(self, cohort_id: str) -> Cohort:
        cohort = await self.uow.cohorts.get(cohort_id)
        if cohort is None:
            raise NotFoundError(f"Cohort not found with ID: {cohort_id}")
        return cohort

    async def close_cohort(self, cohort_id: str) -> list[TransitionResult]:
        """Mark the cohort COMPLETED and complete every open enrollment in it."""
        cohort = await self._load(cohort_id)
        if cohort.status == CohortStatus.CANCELLED:
            raise InvalidInputError("A cancelled cohort cannot be closed.")
        if cohort.status == CohortStatus.COMPLETED:
            return []

        cohort.status = CohortStatus.COMPLETED
        await self.uow.flush()
        logger.info("cohort_closed", cohort_id=cohort.id)
        return await self.lifecycle.complete_cohort_enrollments(cohort.id)

    async def extend_cohort(self, cohort_id: str, new_end_date: date) -> list[TransitionResult]:
        cohort = await self._load(cohort_id)
        if cohort.status == CohortStatus.CANCELLED:
            raise InvalidInputError("A cancelled cohort cannot be extended.")
        if new_end_date <= cohort.end_date:
            raise InvalidInputError(
                f"New end date must be after the current end date ({cohort.end_date.isoformat()})."
            )
        if new_end_date < self._today():
            raise InvalidInputError("New end date cannot be in the past.")

        if cohort.status == CohortStatus.COMPLETED:
            others = [
                other
                for other in await self.uow.cohorts.list_active_for_center(cohort.center_id)
                if other.id != cohort.id
            ]
            if others:
                raise AmbiguousScopeError(
                    "Cannot reopen cohort: its center already has an active cohort."
                )
            cohort.status = CohortStatus.ACTIVE

        old_end_date = cohort.end_date
        cohort.end_date = new_end_date
        await self.uow.flush()
        logger.info(
            "cohort_extended",
            cohort_id=cohort.id,
            old_end_date=old_end_date.isoformat(),
            new_end_date=new_end_date.isoformat(),
        )
        return await self.lifecycle.reactivate_cohort_enrollments(cohort.id)

    async def verify_enrollment(self, enrollment_id: str, verifier_id: str) -> Enrollment:
        enrollment = await self.uow.enrollments.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment not found with ID: {enrollment_id}")
        if enrollment.created_by is not None and enrollment.created_by == verifier_id:
            raise AccessDeniedError("Access denied. An enrollment cannot be verified by its creator.")
        if enrollment.is_verified:
            return enrollment

        enrollment.is_verified = True
        enrollment.verified_by = verifier_id
        enrollment.verified_at = self.clock()
        await self.uow.flush()
        logger.info("enrollment_verified", enrollment_id=enrollment.id, verified_by=verifier_id)
        return enrollment
