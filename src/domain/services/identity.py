from __future__ import annotations

import structlog
from src.domain.errors import UnresolvableActorError
from src.domain.models import ActorContext
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import Facilitator
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()


class IdentityResolver:
    """Turn a verified actor identity into the request's ``ActorContext``."""

    def __init__(self, uow: UnitOfWork, scope: ScopeValidator) -> None:
        self.uow = uow
        self.scope = scope

    async def resolve_context(self, actor_identity: str) -> ActorContext:
        """Load the facilitator's partner and center and bind their active cohort.

        ``actor_identity`` is the token subject: either the facilitator id or
        their email address. Missing assignments surface as access denials.
        """
        facilitator = await self._load(actor_identity)
        if facilitator is None or not facilitator.is_active:
            logger.warning("actor_unresolvable", actor=actor_identity, reason="unknown")
            raise UnresolvableActorError("Access denied. Facilitator profile not found.")

        if facilitator.partner_id is None or facilitator.center_id is None:
            logger.warning(
                "actor_unresolvable",
                actor=facilitator.id,
                reason="missing_assignment",
                partner_id=facilitator.partner_id,
                center_id=facilitator.center_id,
            )
            raise UnresolvableActorError(
                "Access denied. Facilitator must be assigned to a partner and center."
            )

        cohort = await self.scope.find_active_scope(facilitator.center_id)
        return ActorContext(
            actor_id=facilitator.id,
            partner_id=facilitator.partner_id,
            center_id=facilitator.center_id,
            scope_id=cohort.id,
        )

    async def _load(self, actor_identity: str) -> Facilitator | None:
        if "@" in actor_identity:
            return await self.uow.facilitators.get_by_email(actor_identity)
        return await self.uow.facilitators.get(actor_identity)
