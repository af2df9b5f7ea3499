from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from src.infrastructure.db.models import AttendanceStatus


class AttendanceItemIn(BaseModel):
    enrollment_id: str = Field(..., min_length=1)
    module_id: str = Field(..., min_length=1)
    session_date: date
    status: AttendanceStatus
    remarks: str | None = Field(None, max_length=1000)


class AttendanceBatchRequest(BaseModel):
    records: list[AttendanceItemIn] = Field(..., min_length=1, max_length=500)


class TodayAttendanceRequest(BaseModel):
    enrollment_id: str = Field(..., min_length=1)
    module_id: str = Field(..., min_length=1)
    action: str = Field(..., description="PRESENT or ABSENT")
    reason: str | None = Field(None, max_length=1000)
    session_date: date | None = None


class AttendanceRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    enrollment_id: str
    module_id: str
    session_date: date
    status: AttendanceStatus
    remarks: str | None = None
    recorded_by: str | None = None
    created_at: datetime


class RecordedAttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record: AttendanceRecordOut
    created: bool


class AttendanceBatchResponse(BaseModel):
    results: list[RecordedAttendanceOut]


class AttendanceHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cohort_id: str
    cohort_name: str
    module_id: str
    module_name: str
    start_date: date
    end_date: date
    records: list[AttendanceRecordOut]
    overall_attendance_rate: float
