from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict


class TodayStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cohort_id: str
    module_id: str
    session_date: date
    total_enrolled: int
    present: int
    late: int
    absent: int
    excused: int
    not_marked: int
    attendance_rate: float


class WeeklyTrendOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    this_week_start: date
    this_week_end: date
    last_week_start: date
    last_week_end: date
    this_week_rate: float
    last_week_rate: float
    change: float
    change_text: str
    this_week_records: int
    last_week_records: int


class DashboardSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cohort_id: str
    cohort_name: str
    total_enrollments: int
    active_participants: int
    total_modules: int
    average_score: float | None = None
    module_completion_rate: float
    completed_modules: int
    weekly: WeeklyTrendOut
    status_counts: dict[str, int]
