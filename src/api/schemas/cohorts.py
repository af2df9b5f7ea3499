from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict
from src.domain.services.lifecycle import LifecycleTrigger
from src.infrastructure.db.models import EnrollmentStatus


class ExtendCohortRequest(BaseModel):
    new_end_date: date


class TransitionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: str
    old_status: EnrollmentStatus
    new_status: EnrollmentStatus
    trigger: LifecycleTrigger


class CohortTransitionsResponse(BaseModel):
    cohort_id: str
    transitions: list[TransitionOut]
