from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from src.api.deps import get_actor_context, get_clock, get_scope_validator, get_unit_of_work
from src.api.schemas.attendance import (
    AttendanceBatchRequest,
    AttendanceBatchResponse,
    AttendanceHistoryResponse,
    RecordedAttendanceOut,
    TodayAttendanceRequest,
)
from src.core.clock import Clock
from src.domain import ActorContext, AttendanceItem, TodayAttendanceItem
from src.domain.services.attendance import AttendanceService
from src.domain.services.scope import ScopeValidator
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post("", response_model=AttendanceBatchResponse)
async def record_attendance(
    payload: AttendanceBatchRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> AttendanceBatchResponse:
    """Record a batch of attendance.

    Items whose (enrollment, module, session date) already exist come back
    unchanged with ``created=false``; retries are safe.
    """
    items = [
        AttendanceItem(
            enrollment_id=item.enrollment_id,
            module_id=item.module_id,
            session_date=item.session_date,
            status=item.status.value,
            remarks=item.remarks,
        )
        for item in payload.records
    ]
    async with uow:
        results = await AttendanceService(uow, scope, clock=clock).record(context, items)

    return AttendanceBatchResponse(
        results=[RecordedAttendanceOut.model_validate(result) for result in results]
    )


@router.post("/today", response_model=RecordedAttendanceOut)
async def record_today_attendance(
    payload: TodayAttendanceRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> RecordedAttendanceOut:
    item = TodayAttendanceItem(
        enrollment_id=payload.enrollment_id,
        module_id=payload.module_id,
        action=payload.action,
        reason=payload.reason,
        session_date=payload.session_date,
    )
    async with uow:
        result = await AttendanceService(uow, scope, clock=clock).record_today(context, item)
    return RecordedAttendanceOut.model_validate(result)


@router.get("/history", response_model=AttendanceHistoryResponse)
async def attendance_history(
    module_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> AttendanceHistoryResponse:
    async with uow:
        history = await AttendanceService(uow, scope, clock=clock).history(
            context, module_id, start_date, end_date
        )
    return AttendanceHistoryResponse.model_validate(history)
