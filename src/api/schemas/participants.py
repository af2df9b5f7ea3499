from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from src.infrastructure.db.models import EnrollmentStatus


class EnrollRequest(BaseModel):
    participant_id: str = Field(..., min_length=1)


class BulkEnrollRequest(BaseModel):
    participant_ids: list[str] = Field(..., min_length=1, max_length=500)


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    participant_id: str
    cohort_id: str
    enrollment_date: date
    status: EnrollmentStatus
    completion_date: date | None = None
    is_verified: bool
    verified_by: str | None = None
    created_by: str | None = None


class BulkEnrollmentErrorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_id: str
    code: str
    reason: str


class BulkEnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_requested: int
    successful: int
    failed: int
    enrollments: list[EnrollmentOut]
    errors: list[BulkEnrollmentErrorOut]


class ParticipantRowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: str
    participant_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    gender: str | None = None
    enrollment_date: date
    attendance_percentage: float
    enrollment_status: str
    is_verified: bool


class ParticipantPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participants: list[ParticipantRowOut]
    total_elements: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool
