from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from src.api.deps import get_actor_context, get_clock, get_scope_validator, get_unit_of_work
from src.api.schemas.dashboard import DashboardSummaryOut, TodayStatsOut, WeeklyTrendOut
from src.core.clock import Clock
from src.domain import ActorContext
from src.domain.services.reports import ReportService
from src.domain.services.scope import ScopeValidator
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardSummaryOut)
async def dashboard_summary(
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> DashboardSummaryOut:
    async with uow:
        summary = await ReportService(uow, scope, clock=clock).dashboard_summary(context)
    return DashboardSummaryOut.model_validate(summary)


@router.get("/today", response_model=TodayStatsOut)
async def today_stats(
    module_id: str = Query(..., min_length=1),
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> TodayStatsOut:
    async with uow:
        stats = await ReportService(uow, scope, clock=clock).today_stats(context, module_id)
    return TodayStatsOut.model_validate(stats)


@router.get("/weekly", response_model=WeeklyTrendOut)
async def weekly_trend(
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> WeeklyTrendOut:
    async with uow:
        trend = await ReportService(uow, scope, clock=clock).weekly_trend(context)
    return WeeklyTrendOut.model_validate(trend)
