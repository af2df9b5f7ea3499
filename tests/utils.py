from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import issue_smoke_token
from src.core.auth import Role
from src.domain import ActorContext
from src.domain.services.notifications import LifecycleNotification
from src.infrastructure.db.models import (
    AttendanceRecord,
    AttendanceStatus,
    Center,
    Cohort,
    CohortStatus,
    Enrollment,
    EnrollmentStatus,
    Facilitator,
    Participant,
    Partner,
    Program,
    TrainingModule,
)

# Wednesday 2026-03-11, 08:30 in Africa/Harare (UTC+2)
DEFAULT_NOW = datetime(2026, 3, 11, 6, 30, tzinfo=UTC)


class FrozenClock:
    def __init__(self, now: datetime = DEFAULT_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_local(self, hour: int, minute: int) -> None:
        """Move to ``hour:minute`` Harare time on the same day."""
        self.now = datetime.combine(self.now.date(), time(hour - 2, minute), tzinfo=UTC)


class RecordingSink:
    def __init__(self) -> None:
        self.published: list[LifecycleNotification] = []

    def publish(self, notification: LifecycleNotification) -> None:
        self.published.append(notification)


@dataclass
class World:
    """Two tenants: partner 1 / center 1 / cohort S1 and partner 2 / center 2 / cohort S2."""

    today: date
    partner_id: str = "partner-1"
    center_id: str = "center-1"
    program_id: str = "program-1"
    cohort_id: str = "cohort-s1"
    facilitator_id: str = "facilitator-1"
    facilitator_email: str = "facilitator1@example.org"
    module_ids: tuple[str, str] = ("module-1", "module-2")
    participant_ids: tuple[str, str] = ("participant-a", "participant-b")
    enrollment_ids: tuple[str, str] = ("enrollment-a", "enrollment-b")

    other_partner_id: str = "partner-2"
    other_center_id: str = "center-2"
    other_program_id: str = "program-2"
    other_cohort_id: str = "cohort-s2"
    other_facilitator_id: str = "facilitator-2"
    other_module_id: str = "module-x"
    other_participant_id: str = "participant-x"
    other_enrollment_id: str = "enrollment-x"

    @property
    def context(self) -> ActorContext:
        return ActorContext(
            actor_id=self.facilitator_id,
            partner_id=self.partner_id,
            center_id=self.center_id,
            scope_id=self.cohort_id,
        )


async def seed_world(session: AsyncSession, today: date) -> World:
    world = World(today=today)

    session.add_all(
        [
            Partner(id=world.partner_id, name="Partner One"),
            Partner(id=world.other_partner_id, name="Partner Two"),
        ]
    )
    await session.flush()

    session.add_all(
        [
            Center(id=world.center_id, partner_id=world.partner_id, name="Center One"),
            Center(id=world.other_center_id, partner_id=world.other_partner_id, name="Center Two"),
            Program(id=world.program_id, partner_id=world.partner_id, name="Digital Skills"),
            Program(id=world.other_program_id, partner_id=world.other_partner_id, name="Agri"),
        ]
    )
    await session.flush()

    session.add_all(
        [
            TrainingModule(id=world.module_ids[0], program_id=world.program_id, name="Intro", sequence=1),
            TrainingModule(id=world.module_ids[1], program_id=world.program_id, name="Advanced", sequence=2),
            TrainingModule(id=world.other_module_id, program_id=world.other_program_id, name="Soil"),
            Cohort(
                id=world.cohort_id,
                program_id=world.program_id,
                center_id=world.center_id,
                name="S1",
                start_date=today - timedelta(days=30),
                end_date=today + timedelta(days=60),
                status=CohortStatus.ACTIVE,
            ),
            Cohort(
                id=world.other_cohort_id,
                program_id=world.other_program_id,
                center_id=world.other_center_id,
                name="S2",
                start_date=today - timedelta(days=30),
                end_date=today + timedelta(days=60),
                status=CohortStatus.ACTIVE,
            ),
            Facilitator(
                id=world.facilitator_id,
                email=world.facilitator_email,
                partner_id=world.partner_id,
                center_id=world.center_id,
            ),
            Facilitator(
                id=world.other_facilitator_id,
                email="facilitator2@example.org",
                partner_id=world.other_partner_id,
                center_id=world.other_center_id,
            ),
            Participant(
                id=world.participant_ids[0],
                partner_id=world.partner_id,
                first_name="Ada",
                last_name="Moyo",
                email="ada@example.org",
                phone="+263770000001",
            ),
            Participant(
                id=world.participant_ids[1],
                partner_id=world.partner_id,
                first_name="Bongani",
                last_name="Ncube",
                email="bongani@example.org",
                phone="+263770000002",
            ),
            Participant(
                id=world.other_participant_id,
                partner_id=world.other_partner_id,
                first_name="Xolani",
                last_name="Dube",
            ),
        ]
    )
    await session.flush()

    session.add_all(
        [
            Enrollment(
                id=world.enrollment_ids[0],
                participant_id=world.participant_ids[0],
                cohort_id=world.cohort_id,
                enrollment_date=today - timedelta(days=20),
                status=EnrollmentStatus.ENROLLED,
                created_by=world.facilitator_id,
            ),
            Enrollment(
                id=world.enrollment_ids[1],
                participant_id=world.participant_ids[1],
                cohort_id=world.cohort_id,
                enrollment_date=today - timedelta(days=10),
                status=EnrollmentStatus.ENROLLED,
                created_by=world.facilitator_id,
            ),
            Enrollment(
                id=world.other_enrollment_id,
                participant_id=world.other_participant_id,
                cohort_id=world.other_cohort_id,
                enrollment_date=today - timedelta(days=20),
                status=EnrollmentStatus.ENROLLED,
                created_by=world.other_facilitator_id,
            ),
        ]
    )
    await session.commit()
    return world


async def add_attendance(
    session: AsyncSession,
    enrollment_id: str,
    module_id: str,
    session_date: date,
    status: AttendanceStatus = AttendanceStatus.PRESENT,
) -> AttendanceRecord:
    record = AttendanceRecord(
        enrollment_id=enrollment_id,
        module_id=module_id,
        session_date=session_date,
        status=status,
    )
    session.add(record)
    await session.flush()
    return record


def auth_headers(
    user_id: str = "facilitator-1",
    role: Role = Role.FACILITATOR,
    email: str | None = None,
) -> dict[str, str]:
    token = issue_smoke_token(user_id, role=role, email=email)
    return {"Authorization": f"Bearer {token}"}
