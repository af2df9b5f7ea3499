"""Cohort isolation: the single gate every tenant-scoped read or write passes.

A facilitator operates inside exactly one ACTIVE cohort of their center. Zero
matches denies access; more than one is a data-integrity fault and is never
resolved by picking one of them.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from src.core.clock import Clock, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.errors import (
    AccessDeniedError,
    AmbiguousScopeError,
    NoActiveScopeError,
    NotFoundError,
    ScopeMismatchError,
)
from src.domain.models import ActorContext
from src.infrastructure.db.models import (
    Cohort,
    CohortStatus,
    Enrollment,
    Participant,
    TrainingModule,
)
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()

NO_ACTIVE_COHORT = "Access denied. No active cohort found for your center."
AMBIGUOUS_COHORT = (
    "Multiple active cohorts found. A facilitator must be assigned exactly one active cohort."
)


class ScopeValidator(Protocol):
    async def find_active_scope(self, center_id: str) -> Cohort: ...

    async def get_authoritative_scope(self, context: ActorContext) -> Cohort: ...

    async def validate_scope_access(
        self, context: ActorContext, requested_scope_id: str
    ) -> Cohort: ...

    async def ensure_enrollment_access(
        self, context: ActorContext, enrollment_id: str
    ) -> Enrollment: ...

    async def ensure_module_access(self, scope: Cohort, module_id: str) -> TrainingModule: ...

    async def ensure_participant_access(
        self, context: ActorContext, participant_id: str
    ) -> Participant: ...


class CohortScopeValidator:
    """Database-backed ``ScopeValidator``."""

    def __init__(
        self,
        uow: UnitOfWork,
        *,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.clock = clock
        self.settings = settings or get_settings()

    async def find_active_scope(self, center_id: str) -> Cohort:
        cohorts = await self.uow.cohorts.list_active_for_center(center_id)
        if not cohorts:
            logger.warning("scope_resolution_failed", reason="none_active", center_id=center_id)
            raise NoActiveScopeError(NO_ACTIVE_COHORT)
        if len(cohorts) > 1:
            logger.error(
                "scope_resolution_failed",
                reason="ambiguous",
                center_id=center_id,
                cohort_ids=[cohort.id for cohort in cohorts],
            )
            raise AmbiguousScopeError(AMBIGUOUS_COHORT)
        return cohorts[0]

    async def get_authoritative_scope(self, context: ActorContext) -> Cohort:
        cohort = await self.find_active_scope(context.center_id)
        if cohort.id != context.scope_id:
            logger.error(
                "scope_resolution_failed",
                reason="mismatch",
                expected=context.scope_id,
                found=cohort.id,
            )
            raise ScopeMismatchError("Access denied. Cohort mismatch detected.")
        return cohort

    async def validate_scope_access(
        self, context: ActorContext, requested_scope_id: str
    ) -> Cohort:
        if requested_scope_id != context.scope_id:
            raise AccessDeniedError(
                "Access denied. You can only access data from your assigned active cohort."
            )

        cohort = await self.uow.cohorts.get(requested_scope_id)
        if cohort is None:
            raise AccessDeniedError("Access denied. Cohort not found.")
        if cohort.status != CohortStatus.ACTIVE:
            raise AccessDeniedError("Access denied. Cohort is not active.")
        if cohort.center_id != context.center_id:
            raise AccessDeniedError("Access denied. Cohort does not belong to your center.")

        today = business_today(self.clock, self.settings.business_timezone)
        if cohort.end_date < today:
            raise AccessDeniedError("Access denied. Cohort has ended.")
        return cohort

    async def ensure_enrollment_access(
        self, context: ActorContext, enrollment_id: str
    ) -> Enrollment:
        enrollment = await self.uow.enrollments.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment not found with ID: {enrollment_id}")
        if enrollment.cohort_id != context.scope_id:
            raise AccessDeniedError(
                "Access denied. Enrollment does not belong to your assigned active cohort."
            )
        # Re-checks status, center and end date on the enrollment's own cohort
        await self.validate_scope_access(context, enrollment.cohort_id)
        return enrollment

    async def ensure_module_access(self, scope: Cohort, module_id: str) -> TrainingModule:
        module = await self.uow.modules.get(module_id)
        if module is None:
            raise NotFoundError(f"Training module not found with ID: {module_id}")
        if module.program_id != scope.program_id:
            raise AccessDeniedError(
                "Access denied. Training module does not belong to your cohort's program."
            )
        return module

    async def ensure_participant_access(
        self, context: ActorContext, participant_id: str
    ) -> Participant:
        participant = await self.uow.participants.get(participant_id)
        if participant is None:
            raise NotFoundError(f"Participant not found with ID: {participant_id}")
        if participant.partner_id != context.partner_id:
            raise AccessDeniedError("Access denied. Participant does not belong to your partner.")
        return participant
