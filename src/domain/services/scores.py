from __future__ import annotations

import math
from collections.abc import Sequence

import structlog
from src.core.clock import Clock, system_clock
from src.domain.errors import InvalidInputError
from src.domain.models import ActorContext, ScoreItem
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import AssessmentType, ScoreRecord
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def validate_score_value(value: float) -> float:
    """Reject anything outside ``[0, 100]`` before it reaches storage."""
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Score must be a number, got {value!r}") from exc
    if math.isnan(numeric) or not MIN_SCORE <= numeric <= MAX_SCORE:
        raise InvalidInputError(f"Score must be between 0 and 100, got {value}")
    return numeric


def validate_max_score(value: float | None, score_value: float) -> float:
    """Default to ``MAX_SCORE``; an explicit ceiling must be a positive finite number."""
    if value is None:
        return MAX_SCORE
    try:
        ceiling = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"max_score must be a number, got {value!r}") from exc
    if not math.isfinite(ceiling) or ceiling <= 0:
        raise InvalidInputError(f"max_score must be a finite number greater than 0, got {value}")
    if score_value > ceiling:
        raise InvalidInputError(f"Score {score_value} exceeds max_score {ceiling}")
    return ceiling


def _parse_assessment_type(value: str | AssessmentType) -> AssessmentType:
    if isinstance(value, AssessmentType):
        return value
    try:
        return AssessmentType(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidInputError(f"Invalid assessment type: {value}") from exc


class ScoreService:
    """Score uploads.

    Unlike attendance, uploads are not idempotent: sending the same score twice
    stores two attempts.
    """

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

    async def upload(self, context: ActorContext, items: Sequence[ScoreItem]) -> list[ScoreRecord]:
        cohort = await self.scope.get_authoritative_scope(context)
        await self.scope.validate_scope_access(context, cohort.id)

        records: list[ScoreRecord] = []
        for item in items:
            score_value = validate_score_value(item.score_value)
            max_score = validate_max_score(item.max_score, score_value)
            assessment_type = _parse_assessment_type(item.assessment_type)

            await self.scope.ensure_enrollment_access(context, item.enrollment_id)
            await self.scope.ensure_module_access(cohort, item.module_id)

            record = ScoreRecord(
                enrollment_id=item.enrollment_id,
                module_id=item.module_id,
                assessment_type=assessment_type,
                assessment_name=item.assessment_name,
                score_value=score_value,
                max_score=max_score,
                assessment_date=item.assessment_date,
                recorded_by=context.actor_id,
                recorded_at=self.clock(),
            )
            await self.uow.scores.add(record)
            logger.info(
                "score_uploaded",
                score_id=record.id,
                enrollment_id=record.enrollment_id,
                module_id=record.module_id,
                assessment_type=assessment_type.value,
                score_value=score_value,
                recorded_by=context.actor_id,
            )
            records.append(record)
        return records
