"""Training module authoring for facilitators.

Modules belong to the program of the facilitator's active cohort. They can be
created or edited only while that cohort is writable: once its end date has
passed the program's modules are frozen for the facilitator.
"""

from __future__ import annotations

import structlog
from src.core.clock import Clock, system_clock
from src.domain.errors import AccessDeniedError, InvalidInputError
from src.domain.models import ActorContext
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import TrainingModule
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidInputError("Module name must not be blank")
    return cleaned


def _check_sequence(sequence: int) -> int:
    if sequence < 1:
        raise InvalidInputError(f"Module sequence must be at least 1, got {sequence}")
    return sequence


class TrainingModuleService:
    def __init__(
        self,
        uow: UnitOfWork,
        scope: ScopeValidator,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self.uow = uow
        self.scope = scope
        self.clock = clock

    async def create_module(
        self,
        context: ActorContext,
        name: str,
        *,
        description: str | None = None,
        sequence: int = 1,
    ) -> TrainingModule:
        cohort = await self.scope.get_authoritative_scope(context)
        # Denies a cohort past its end date
        await self.scope.validate_scope_access(context, cohort.id)

        module = TrainingModule(
            program_id=cohort.program_id,
            name=_clean_name(name),
            description=description,
            sequence=_check_sequence(sequence),
            created_by=context.actor_id,
            created_at=self.clock(),
        )
        await self.uow.modules.add(module)
        logger.info(
            "training_module_created",
            module_id=module.id,
            program_id=module.program_id,
            cohort_id=cohort.id,
            created_by=context.actor_id,
        )
        return module

    async def update_module(
        self,
        context: ActorContext,
        module_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        sequence: int | None = None,
    ) -> TrainingModule:
        """Edit a module the caller created; ``None`` leaves a field unchanged."""
        cohort = await self.scope.get_authoritative_scope(context)
        await self.scope.validate_scope_access(context, cohort.id)
        module = await self.scope.ensure_module_access(cohort, module_id)
        if module.created_by != context.actor_id:
            raise AccessDeniedError("Access denied. You can only edit modules you created.")

        if name is not None:
            module.name = _clean_name(name)
        if description is not None:
            module.description = description
        if sequence is not None:
            module.sequence = _check_sequence(sequence)
        await self.uow.flush()
        logger.info(
            "training_module_updated",
            module_id=module.id,
            program_id=module.program_id,
            updated_by=context.actor_id,
        )
        return module
