from __future__ import annotations

from fastapi import APIRouter, Depends
from src.api.deps import OVERSIGHT_ROLES, get_clock, get_unit_of_work, require_roles
from src.api.schemas.cohorts import (
    CohortTransitionsResponse,
    ExtendCohortRequest,
    TransitionOut,
)
from src.api.schemas.participants import EnrollmentOut
from src.core.clock import Clock
from src.domain import User
from src.domain.services.cohorts import CohortAdminService
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(prefix="/admin", tags=["Administration"])


@router.post("/cohorts/{cohort_id}/close", response_model=CohortTransitionsResponse)
async def close_cohort(
    cohort_id: str,
    user: User = Depends(require_roles(OVERSIGHT_ROLES)),
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Clock = Depends(get_clock),
) -> CohortTransitionsResponse:
    async with uow:
        results = await CohortAdminService(uow, clock=clock).close_cohort(cohort_id)
    return CohortTransitionsResponse(
        cohort_id=cohort_id,
        transitions=[TransitionOut.model_validate(result) for result in results],
    )


@router.post("/cohorts/{cohort_id}/extend", response_model=CohortTransitionsResponse)
async def extend_cohort(
    cohort_id: str,
    payload: ExtendCohortRequest,
    user: User = Depends(require_roles(OVERSIGHT_ROLES)),
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Clock = Depends(get_clock),
) -> CohortTransitionsResponse:
    async with uow:
        results = await CohortAdminService(uow, clock=clock).extend_cohort(
            cohort_id, payload.new_end_date
        )
    return CohortTransitionsResponse(
        cohort_id=cohort_id,
        transitions=[TransitionOut.model_validate(result) for result in results],
    )


@router.post("/enrollments/{enrollment_id}/verify", response_model=EnrollmentOut)
async def verify_enrollment(
    enrollment_id: str,
    user: User = Depends(require_roles(OVERSIGHT_ROLES)),
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Clock = Depends(get_clock),
) -> EnrollmentOut:
    async with uow:
        enrollment = await CohortAdminService(uow, clock=clock).verify_enrollment(
            enrollment_id, user.user_id
        )
    return EnrollmentOut.model_validate(enrollment)
