from __future__ import annotations

from fastapi import APIRouter, Depends, status
from src.api.deps import get_actor_context, get_clock, get_scope_validator, get_unit_of_work
from src.api.schemas.scores import ScoreRecordOut, ScoreUploadRequest, ScoreUploadResponse
from src.core.clock import Clock
from src.domain import ActorContext, ScoreItem
from src.domain.services.scope import ScopeValidator
from src.domain.services.scores import ScoreService
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(prefix="/scores", tags=["Scores"])


@router.post("", response_model=ScoreUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_scores(
    payload: ScoreUploadRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> ScoreUploadResponse:
    items = [
        ScoreItem(
            enrollment_id=item.enrollment_id,
            module_id=item.module_id,
            assessment_type=item.assessment_type.value,
            score_value=item.score_value,
            max_score=item.max_score,
            assessment_name=item.assessment_name,
            assessment_date=item.assessment_date,
        )
        for item in payload.scores
    ]
    async with uow:
        records = await ScoreService(uow, scope, clock=clock).upload(context, items)
    return ScoreUploadResponse(scores=[ScoreRecordOut.model_validate(r) for r in records])
