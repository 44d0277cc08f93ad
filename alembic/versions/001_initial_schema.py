"""Initial schema: users, catalogue, progress, payouts and referral tiers.

Creates users, courses, lessons, user_courses, user_lessons, certificates,
rewards and referral_tiers, and seeds the four default referral tiers.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("telegram_id", sa.String(32), nullable=False, unique=True),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("display_name", sa.String(128), nullable=False),
        sa.Column("wallet_address", sa.String(68), nullable=True),
        sa.Column("balance", sa.Float, nullable=False, server_default="0"),
        sa.Column("referral_code", sa.String(16), nullable=False, unique=True),
        sa.Column("referred_by", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("referral_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("referral_tier", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- Courses & Lessons ---
    op.create_table(
        "courses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("level", sa.String(32), nullable=False),
        sa.Column("duration", sa.String(32), nullable=False),
        sa.Column("thumbnail", sa.Text, nullable=False),
        sa.Column("min_reward", sa.Float, nullable=False),
        sa.Column("max_reward", sa.Float, nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "lessons",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("duration", sa.String(32), nullable=False),
        sa.Column("order_number", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_lessons_course_id", "lessons", ["course_id"])

    # --- Progress ---
    op.create_table(
        "user_courses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reward_claimed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("reward_amount", sa.Float, nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_user_course"),
    )
    op.create_index("ix_user_courses_user_id", "user_courses", ["user_id"])

    op.create_table(
        "user_lessons",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("lesson_id", sa.Integer, sa.ForeignKey("lessons.id"), nullable=False),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),
    )

    # --- Certificates & Rewards ---
    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("course_title", sa.String(200), nullable=False),
        sa.Column("issued_date", sa.Date, nullable=False),
        sa.Column("token_id", sa.String(64), nullable=True),
        sa.Column("tx_hash", sa.String(128), nullable=True),
        sa.Column("skills", sa.JSON, nullable=False),
        sa.Column("template_id", sa.String(32), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("issuer", sa.String(128), nullable=False),
        sa.Column("valid_until", sa.Date, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )
    op.create_index("ix_certificates_user_id", "certificates", ["user_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("reason", sa.String(64), nullable=False),
        sa.Column("course_id", sa.Integer, sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("tx_hash", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_rewards_user_id", "rewards", ["user_id"])

    # --- Referral Tiers ---
    op.create_table(
        "referral_tiers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tier", sa.Integer, nullable=False, unique=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("required_referrals", sa.Integer, nullable=False),
        sa.Column("reward_multiplier", sa.Float, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
    )

    _seed_referral_tiers()


def downgrade() -> None:
    op.drop_table("referral_tiers")
    op.drop_table("rewards")
    op.drop_table("certificates")
    op.drop_table("user_lessons")
    op.drop_table("user_courses")
    op.drop_table("lessons")
    op.drop_table("courses")
    op.drop_table("users")


def _seed_referral_tiers() -> None:
    tiers_table = sa.table(
        "referral_tiers",
        sa.column("tier", sa.Integer),
        sa.column("name", sa.String),
        sa.column("required_referrals", sa.Integer),
        sa.column("reward_multiplier", sa.Float),
        sa.column("description", sa.Text),
    )
    op.bulk_insert(tiers_table, [
        {"tier": 0, "name": "Base", "required_referrals": 0, "reward_multiplier": 1.0,
         "description": "Starting tier for every learner"},
        {"tier": 1, "name": "Bronze", "required_referrals": 3, "reward_multiplier": 1.2,
         "description": "Invite 3 friends to earn 20% more per referral"},
        {"tier": 2, "name": "Silver", "required_referrals": 10, "reward_multiplier": 1.5,
         "description": "Invite 10 friends to earn 50% more per referral"},
        {"tier": 3, "name": "Gold", "required_referrals": 25, "reward_multiplier": 2.0,
         "description": "Invite 25 friends to double every referral bonus"},
    ])
