from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from src.api.deps import get_actor_context, get_clock, get_scope_validator, get_unit_of_work
from src.api.schemas.participants import (
    BulkEnrollmentOut,
    BulkEnrollRequest,
    EnrollmentOut,
    EnrollRequest,
    ParticipantPageOut,
)
from src.core.clock import Clock
from src.domain import ActorContext, ParticipantQuery
from src.domain.services.enrollment import EnrollmentService
from src.domain.services.scope import ScopeValidator
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(tags=["Participants"])


@router.post("/enrollments", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def enroll_participant(
    payload: EnrollRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> EnrollmentOut:
    async with uow:
        enrollment = await EnrollmentService(uow, scope, clock=clock).enroll(
            context, payload.participant_id
        )
    return EnrollmentOut.model_validate(enrollment)


@router.post("/enrollments/bulk", response_model=BulkEnrollmentOut)
async def bulk_enroll_participants(
    payload: BulkEnrollRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> BulkEnrollmentOut:
    async with uow:
        result = await EnrollmentService(uow, scope, clock=clock).bulk_enroll(
            context, payload.participant_ids
        )
    return BulkEnrollmentOut.model_validate(result)


@router.get("/participants", response_model=ParticipantPageOut)
async def list_participants(
    search: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    gender: str | None = Query(None),
    sort_by: str = Query("first_name"),
    sort_direction: str = Query("asc"),
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=200),
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> ParticipantPageOut:
    """List the cohort's participants.

    Runs the attendance-gap check first, so the statuses shown are current.
    """
    query = ParticipantQuery(
        search=search,
        status=status_filter,
        gender=gender,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        size=size,
    )
    async with uow:
        result = await EnrollmentService(uow, scope, clock=clock).list_participants(
            context, query
        )
    return ParticipantPageOut.model_validate(result)
