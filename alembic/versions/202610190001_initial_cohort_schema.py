"""Initial schema for tenancy, cohorts, enrollments, attendance and scores

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

cohort_status_enum = sa.Enum("ACTIVE", "COMPLETED", "CANCELLED", name="cohort_status")
enrollment_status_enum = sa.Enum(
    "ENROLLED",
    "ACTIVE",
    "COMPLETED",
    "DROPPED_OUT",
    "WITHDRAWN",
    "CANCELLED",
    name="enrollment_status",
)
attendance_status_enum = sa.Enum(
    "PRESENT", "ABSENT", "LATE", "EXCUSED", name="attendance_status"
)
assessment_type_enum = sa.Enum(
    "QUIZ", "ASSIGNMENT", "EXAM", "CAPSTONE", "OTHER", name="assessment_type"
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "partners",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=True),
        _created_at(),
    )

    op.create_table(
        "centers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "partner_id",
            sa.String(length=64),
            sa.ForeignKey("partners.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("on_time_threshold", sa.Time(), nullable=True),
        sa.Column("attendance_gap_days", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_centers_partner_id", "centers", ["partner_id"])

    op.create_table(
        "programs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "partner_id",
            sa.String(length=64),
            sa.ForeignKey("partners.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_programs_partner_id", "programs", ["partner_id"])

    op.create_table(
        "facilitators",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=128), nullable=True),
        sa.Column(
            "partner_id",
            sa.String(length=64),
            sa.ForeignKey("partners.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "center_id",
            sa.String(length=36),
            sa.ForeignKey("centers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_facilitators_email", "facilitators", ["email"], unique=True)

    op.create_table(
        "participants",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "partner_id",
            sa.String(length=64),
            sa.ForeignKey("partners.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("gender", sa.String(length=16), nullable=True),
        _created_at(),
    )
    op.create_index("ix_participants_partner_id", "participants", ["partner_id"])

    op.create_table(
        "cohorts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "program_id",
            sa.String(length=36),
            sa.ForeignKey("programs.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "center_id",
            sa.String(length=36),
            sa.ForeignKey("centers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", cohort_status_enum, nullable=False),
        sa.Column("target_enrollment", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("name", name="uq_cohorts_name"),
    )
    op.create_index("ix_cohorts_center_status", "cohorts", ["center_id", "status"])

    op.create_table(
        "training_modules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "program_id",
            sa.String(length=36),
            sa.ForeignKey("programs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_by",
            sa.String(length=36),
            sa.ForeignKey("facilitators.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
    )
    op.create_index("ix_training_modules_program_id", "training_modules", ["program_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "participant_id",
            sa.String(length=36),
            sa.ForeignKey("participants.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "cohort_id",
            sa.String(length=36),
            sa.ForeignKey("cohorts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("enrollment_date", sa.Date(), nullable=False),
        sa.Column("status", enrollment_status_enum, nullable=False),
        sa.Column("completion_date", sa.Date(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verified_by", sa.String(length=64), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_by",
            sa.String(length=36),
            sa.ForeignKey("facilitators.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "participant_id", "cohort_id", name="uq_enrollment_participant_cohort"
        ),
    )
    op.create_index("ix_enrollments_participant_id", "enrollments", ["participant_id"])
    op.create_index("ix_enrollments_cohort_id", "enrollments", ["cohort_id"])
    op.create_index("ix_enrollments_status", "enrollments", ["status"])

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "enrollment_id",
            sa.String(length=36),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "module_id",
            sa.String(length=36),
            sa.ForeignKey("training_modules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status_enum, nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(length=36), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "enrollment_id",
            "module_id",
            "session_date",
            name="uq_attendance_natural_key",
        ),
    )
    op.create_index(
        "ix_attendance_records_enrollment_id", "attendance_records", ["enrollment_id"]
    )
    op.create_index(
        "ix_attendance_records_session_date", "attendance_records", ["session_date"]
    )

    op.create_table(
        "score_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "enrollment_id",
            sa.String(length=36),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "module_id",
            sa.String(length=36),
            sa.ForeignKey("training_modules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("assessment_type", assessment_type_enum, nullable=False),
        sa.Column("assessment_name", sa.String(length=255), nullable=True),
        sa.Column("score_value", sa.Float(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False, server_default="100"),
        sa.Column("assessment_date", sa.Date(), nullable=True),
        sa.Column("recorded_by", sa.String(length=36), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "score_value >= 0 AND score_value <= 100",
            name="ck_score_records_score_range",
        ),
    )
    op.create_index("ix_score_records_enrollment_id", "score_records", ["enrollment_id"])


def downgrade() -> None:
    op.drop_index("ix_score_records_enrollment_id", table_name="score_records")
    op.drop_table("score_records")
    op.drop_index("ix_attendance_records_session_date", table_name="attendance_records")
    op.drop_index("ix_attendance_records_enrollment_id", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("ix_enrollments_status", table_name="enrollments")
    op.drop_index("ix_enrollments_cohort_id", table_name="enrollments")
    op.drop_index("ix_enrollments_participant_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_training_modules_program_id", table_name="training_modules")
    op.drop_table("training_modules")
    op.drop_index("ix_cohorts_center_status", table_name="cohorts")
    op.drop_table("cohorts")
    op.drop_index("ix_participants_partner_id", table_name="participants")
    op.drop_table("participants")
    op.drop_index("ix_facilitators_email", table_name="facilitators")
    op.drop_table("facilitators")
    op.drop_index("ix_programs_partner_id", table_name="programs")
    op.drop_table("programs")
    op.drop_index("ix_centers_partner_id", table_name="centers")
    op.drop_table("centers")
    op.drop_table("partners")

    bind = op.get_bind()
    for enum in (
        assessment_type_enum,
        attendance_status_enum,
        enrollment_status_enum,
        cohort_status_enum,
    ):
        enum.drop(bind, checkfirst=True)
