from __future__ import annotations

from fastapi import APIRouter, Depends, status
from src.api.deps import get_actor_context, get_clock, get_scope_validator, get_unit_of_work
from src.api.schemas.modules import ModuleCreateRequest, ModuleUpdateRequest, TrainingModuleOut
from src.core.clock import Clock
from src.domain import ActorContext
from src.domain.services.modules import TrainingModuleService
from src.domain.services.scope import ScopeValidator
from src.infrastructure.repositories import UnitOfWork

router = APIRouter(prefix="/modules", tags=["Training Modules"])


@router.post("", response_model=TrainingModuleOut, status_code=status.HTTP_201_CREATED)
async def create_module(
    payload: ModuleCreateRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> TrainingModuleOut:
    async with uow:
        module = await TrainingModuleService(uow, scope, clock=clock).create_module(
            context,
            payload.name,
            description=payload.description,
            sequence=payload.sequence,
        )
    return TrainingModuleOut.model_validate(module)


@router.patch("/{module_id}", response_model=TrainingModuleOut)
async def update_module(
    module_id: str,
    payload: ModuleUpdateRequest,
    context: ActorContext = Depends(get_actor_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    scope: ScopeValidator = Depends(get_scope_validator),
    clock: Clock = Depends(get_clock),
) -> TrainingModuleOut:
    async with uow:
        module = await TrainingModuleService(uow, scope, clock=clock).update_module(
            context,
            module_id,
            name=payload.name,
            description=payload.description,
            sequence=payload.sequence,
        )
    return TrainingModuleOut.model_validate(module)
