from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError
from src.core.clock import Clock, business_today, system_clock
from src.core.config import Settings, get_settings
from src.domain.errors import CoreError, DuplicateEnrollmentError, InvalidInputError
from src.domain.models import ActorContext, ParticipantQuery
from src.domain.services.lifecycle import EnrollmentLifecycle, gap_days_for, gap_elapsed
from src.domain.services.reports import attendance_rate
from src.domain.services.scope import ScopeValidator
from src.infrastructure.db.models import Enrollment, EnrollmentStatus
from src.infrastructure.repositories import UnitOfWork

logger = structlog.get_logger()

INACTIVE = "INACTIVE"


@dataclass(slots=True)
class ParticipantRow:
    enrollment_id: str
    participant_id: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    gender: str | None
    enrollment_date: date
    attendance_percentage: float
    enrollment_status: str
    is_verified: bool


@dataclass(slots=True)
class BulkEnrollmentError:
    participant_id: str
    code: str
    reason: str


@dataclass(slots=True)
class BulkEnrollmentResult:
    total_requested: int
    enrollments: list[Enrollment]
    errors: list[BulkEnrollmentError]

    @property
    def successful(self) -> int:
        return len(self.enrollments)

    @property
    def failed(self) -> int:
        return len(self.errors)


@dataclass(slots=True)
class ParticipantPage:
    participants: list[ParticipantRow]
    total_elements: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


def _text_key(value: str | None) -> str:
    return (value or "").lower()


SORT_KEYS: dict[str, Any] = {
    "firstname": lambda row: _text_key(row.first_name),
    "lastname": lambda row: _text_key(row.last_name),
    "email": lambda row: _text_key(row.email),
    "phone": lambda row: row.phone or "",
    "enrollmentdate": lambda row: row.enrollment_date,
    "attendancepercentage": lambda row: row.attendance_percentage,
    "enrollmentstatus": lambda row: row.enrollment_status,
}


class EnrollmentService:
    def __init__(
        self,
        uow: UnitOfWork,
        scope: ScopeValidator,
        *,
        lifecycle: EnrollmentLifecycle | None = None,
        clock: Clock = system_clock,
        settings: Settings | None = None,
    ) -> None:
        self.uow = uow
        self.scope = scope
        self.clock = clock
        self.settings = settings or get_settings()
        self.lifecycle = lifecycle or EnrollmentLifecycle(
            uow, clock=clock, settings=self.settings
        )

    def _today(self) -> date:
        return business_today(self.clock, self.settings.business_timezone)

    async def enroll(self, context: ActorContext, participant_id: str) -> Enrollment:
        """Enroll a participant of the actor's partner into the actor's cohort.

        The new row is always unverified; only an M&E officer or admin may
        verify it later.
        """
        cohort = await self.scope.get_authoritative_scope(context)
        await self.scope.validate_scope_access(context, cohort.id)
        participant = await self.scope.ensure_participant_access(context, participant_id)

        if await self.uow.enrollments.find(participant.id, cohort.id) is not None:
            raise DuplicateEnrollmentError("Participant is already enrolled in this cohort.")

        enrollment = Enrollment(
            participant_id=participant.id,
            cohort_id=cohort.id,
            enrollment_date=self._today(),
            status=EnrollmentStatus.ENROLLED,
            is_verified=False,
            verified_by=None,
            created_by=context.actor_id,
        )
        try:
            await self.uow.enrollments.add(enrollment)
        except IntegrityError as exc:
            # Concurrent enroll of the same participant lost the unique-constraint race
            raise DuplicateEnrollmentError(
                "Participant is already enrolled in this cohort."
            ) from exc

        logger.info(
            "participant_enrolled",
            enrollment_id=enrollment.id,
            participant_id=participant.id,
            cohort_id=cohort.id,
            created_by=context.actor_id,
        )
        return enrollment

    async def bulk_enroll(
        self, context: ActorContext, participant_ids: Sequence[str]
    ) -> BulkEnrollmentResult:
        """Enroll each participant independently and report per-item outcomes.

        Scope problems fail the whole call; a rejected participant only fails
        its own item.
        """
        if not participant_ids:
            raise InvalidInputError("participant_ids must not be empty")
        cohort = await self.scope.get_authoritative_scope(context)
        await self.scope.validate_scope_access(context, cohort.id)

        result = BulkEnrollmentResult(
            total_requested=len(participant_ids), enrollments=[], errors=[]
        )
        for participant_id in participant_ids:
            try:
                async with self.uow.savepoint():
                    enrollment = await self.enroll(context, participant_id)
            except CoreError as exc:
                logger.info(
                    "bulk_enrollment_item_failed",
                    participant_id=participant_id,
                    code=exc.code,
                    reason=exc.message,
                )
                result.errors.append(
                    BulkEnrollmentError(
                        participant_id=participant_id, code=exc.code, reason=exc.message
                    )
                )
                continue
            result.enrollments.append(enrollment)

        logger.info(
            "bulk_enrollment_completed",
            cohort_id=cohort.id,
            total_requested=result.total_requested,
            successful=result.successful,
            failed=result.failed,
        )
        return result

        return enrollment

    async def list_participants(
        self, context: ActorContext, query: ParticipantQuery | None = None
    ) -> ParticipantPage:
        query = query or ParticipantQuery()
        if query.page < 0 or query.size < 1:
            raise InvalidInputError("page must be >= 0 and size must be >= 1")

        cohort = await self.scope.get_authoritative_scope(context)
        # Pull-based: statuses are brought up to date before they are shown
        await self.lifecycle.check_cohort_attendance_gaps(cohort)

        center = await self.uow.cohorts.get_center(cohort.center_id)
        gap_days = gap_days_for(center, self.settings)
        today = self._today()

        pairs = await self.uow.enrollments.list_with_participants(cohort.id)
        enrollment_ids = [enrollment.id for enrollment, _ in pairs]
        statuses = await self.uow.attendance.statuses_by_enrollment(enrollment_ids)
        latest = await self.uow.attendance.latest_session_dates(enrollment_ids)

        rows: list[ParticipantRow] = []
        for enrollment, participant in pairs:
            display = enrollment.status.value
            if enrollment.status == EnrollmentStatus.ENROLLED and gap_elapsed(
                latest.get(enrollment.id), today, gap_days
            ):
                display = INACTIVE
            rows.append(
                ParticipantRow(
                    enrollment_id=enrollment.id,
                    participant_id=participant.id,
                    first_name=participant.first_name,
                    last_name=participant.last_name,
                    email=participant.email,
                    phone=participant.phone,
                    gender=participant.gender,
                    enrollment_date=enrollment.enrollment_date,
                    attendance_percentage=attendance_rate(statuses.get(enrollment.id, [])),
                    enrollment_status=display,
                    is_verified=enrollment.is_verified,
                )
            )

        rows = self._filter(rows, query)
        rows = self._sort(rows, query)
        return self._paginate(rows, query)

    @staticmethod
    def _filter(rows: list[ParticipantRow], query: ParticipantQuery) -> list[ParticipantRow]:
        if query.search and query.search.strip():
            term = query.search.strip().lower()
            rows = [
                row
                for row in rows
                if term in _text_key(row.first_name)
                or term in _text_key(row.last_name)
                or term in _text_key(row.email)
                or (row.phone is not None and term in row.phone)
            ]
        if query.status and query.status.strip():
            wanted = query.status.strip().upper()
            rows = [row for row in rows if row.enrollment_status == wanted]
        if query.gender and query.gender.strip():
            gender = query.gender.strip().upper()
            rows = [row for row in rows if (row.gender or "").upper() == gender]
        return rows

    @staticmethod
    def _sort(rows: list[ParticipantRow], query: ParticipantQuery) -> list[ParticipantRow]:
        normalized = (query.sort_by or "").replace("_", "").lower()
        key = SORT_KEYS.get(normalized, SORT_KEYS["firstname"])
        reverse = (query.sort_direction or "asc").lower() == "desc"
        return sorted(rows, key=key, reverse=reverse)

    @staticmethod
    def _paginate(rows: list[ParticipantRow], query: ParticipantQuery) -> ParticipantPage:
        total = len(rows)
        start = query.page * query.size
        total_pages = math.ceil(total / query.size)
        return ParticipantPage(
            participants=rows[start : start + query.size],
            total_elements=total,
            total_pages=total_pages,
            current_page=query.page,
            page_size=query.size,
            has_next=query.page < total_pages - 1,
            has_previous=query.page > 0,
        )
