"""Baseline schema: profiles, courses, enrollment, ledger, groups, notifications, certificates.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _fk(name: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _ts(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # --- Profiles ---
    op.create_table(
        "profiles",
        _id(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="student"),
        sa.Column("unique_id", sa.String(16), nullable=True, unique=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("location", sa.String(128), nullable=True),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        _ts("created_at"),
        sa.CheckConstraint("role IN ('student', 'admin')", name="ck_profiles_role"),
        sa.CheckConstraint("total_points >= 0", name="ck_profiles_points"),
    )

    # --- Courses & Sessions ---
    op.create_table(
        "courses",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        _ts("created_at"),
    )
    op.create_table(
        "admin_courses",
        _id(),
        _fk("admin_id", "profiles.id"),
        _fk("course_id", "courses.id"),
        _ts("created_at"),
        sa.UniqueConstraint("admin_id", "course_id", name="uq_admin_course"),
    )
    op.create_table(
        "sessions",
        _id(),
        _fk("course_id", "courses.id"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("order_number", sa.Integer, nullable=False),
        sa.Column("video_url", sa.Text, nullable=True),
        sa.Column("material_url", sa.Text, nullable=True),
        sa.Column("visible", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("locked", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index("idx_sessions_course_order", "sessions", ["course_id", "order_number"])

    # --- Enrollment & Progress ---
    op.create_table(
        "student_courses",
        _id(),
        _fk("student_id", "profiles.id"),
        _fk("course_id", "courses.id"),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("hide_new_sessions", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts("assigned_at"),
        _fk("assigned_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _ts("completed_at", nullable=True),
        sa.UniqueConstraint("student_id", "course_id", name="uq_student_course"),
    )
    op.create_table(
        "student_sessions",
        _id(),
        _fk("student_id", "profiles.id"),
        _fk("session_id", "sessions.id"),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts("completed_at", nullable=True),
        sa.Column("score", sa.Integer, nullable=True),
        sa.Column("earned_points", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("student_id", "session_id", name="uq_student_session"),
    )

    # --- Subscription ledger (no uniqueness on student_course_id) ---
    op.create_table(
        "student_course_subscription",
        _id(),
        _fk("student_course_id", "student_courses.id"),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("remaining_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("plan_duration_months", sa.Integer, nullable=False, server_default="0"),
        sa.Column("warning", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_student_course_subscription_student_course_id",
        "student_course_subscription",
        ["student_course_id"],
    )
    op.create_table(
        "low_session_alerts",
        _id(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("student_name", sa.String(128), nullable=False),
        sa.Column("student_email", sa.String(320), nullable=False),
        sa.Column("student_phone", sa.String(32), nullable=True),
        sa.Column("student_unique_id", sa.String(16), nullable=True),
        sa.Column("remaining_sessions", sa.Integer, nullable=False),
        _ts("updated_at"),
    )

    # --- Groups & Points ---
    op.create_table(
        "course_groups",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        _fk("course_id", "courses.id"),
        sa.Column("branch", sa.String(128), nullable=True),
        sa.Column("start_date", sa.Date, nullable=False),
        _fk("created_by", "profiles.id"),
        _fk("allowed_admin_id", "profiles.id", nullable=True, ondelete="SET NULL"),
        _ts("created_at"),
    )
    op.create_table(
        "course_group_students",
        _id(),
        _fk("group_id", "course_groups.id"),
        _fk("student_id", "profiles.id"),
        _fk("student_course_id", "student_courses.id", nullable=True),
        _ts("joined_at"),
        sa.UniqueConstraint("group_id", "student_id", name="uq_group_student"),
    )
    op.create_table(
        "student_group_points",
        _id(),
        _fk("student_id", "profiles.id"),
        _fk("group_id", "course_groups.id"),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        _ts("updated_at"),
        sa.UniqueConstraint("student_id", "group_id", name="uq_student_group_points"),
    )

    # --- Notifications ---
    op.create_table(
        "student_notifications",
        _id(),
        _fk("student_id", "profiles.id"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("notification_type", sa.String(32), nullable=False),
        _ts("created_at"),
        _ts("read_at", nullable=True),
    )
    op.create_index("ix_student_notifications_student_id", "student_notifications", ["student_id"])

    # --- Certificates ---
    op.create_table(
        "certificates",
        _id(),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("certificate_text", sa.Text, nullable=False),
        sa.Column("certificate_date", sa.Date, nullable=False),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_table(
        "student_certificates",
        _id(),
        _fk("certificate_id", "certificates.id"),
        sa.Column("student_unique_id", sa.String(16), nullable=False),
        sa.Column("student_name", sa.String(128), nullable=False),
        sa.Column("download_count", sa.Integer, nullable=False, server_default="0"),
        _ts("created_at"),
    )
    op.create_index("ix_student_certificates_student_unique_id", "student_certificates", ["student_unique_id"])


def downgrade() -> None:
    for table in (
        "student_certificates",
        "certificates",
        "student_notifications",
        "student_group_points",
        "course_group_students",
        "course_groups",
        "low_session_alerts",
        "student_course_subscription",
        "student_sessions",
        "student_courses",
        "sessions",
        "admin_courses",
        "courses",
        "profiles",
    ):
        op.drop_table(table)
