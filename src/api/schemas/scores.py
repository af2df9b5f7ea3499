from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from src.infrastructure.db.models import AssessmentType


class ScoreItemIn(BaseModel):
    enrollment_id: str = Field(..., min_length=1)
    module_id: str = Field(..., min_length=1)
    assessment_type: AssessmentType
    # Range is enforced by the score service so every caller gets the same error
    score_value: float
    max_score: float | None = None
    assessment_name: str | None = Field(None, max_length=255)
    assessment_date: date | None = None


class ScoreUploadRequest(BaseModel):
    scores: list[ScoreItemIn] = Field(..., min_length=1, max_length=500)


class ScoreRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    enrollment_id: str
    module_id: str
    assessment_type: AssessmentType
    assessment_name: str | None = None
    score_value: float
    max_score: float
    assessment_date: date | None = None
    recorded_by: str
    recorded_at: datetime


class ScoreUploadResponse(BaseModel):
    scores: list[ScoreRecordOut]
