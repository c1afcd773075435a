"""Initial schema: users, schedules, check-ins, circle, alerts, notification log.

Revision ID: 001
Revises:
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("is_checker", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_known_address", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "push_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(10), nullable=False, server_default="ios"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "token", name="uq_push_token_user_token"),
    )
    op.create_index(op.f("ix_push_tokens_user_id"), "push_tokens", ["user_id"], unique=False)

    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("window_start_hour", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("window_start_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("window_end_hour", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("window_end_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("timezone_identifier", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("active_days", sa.JSON(), nullable=False),
        sa.Column("grace_period_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("reminder_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("reminder_minutes_before", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_schedules_user_id"), "schedules", ["user_id"], unique=False)

    op.create_table(
        "checkins",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("mental_score", sa.Integer(), nullable=False),
        sa.Column("body_score", sa.Integer(), nullable=False),
        sa.Column("mood_score", sa.Integer(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("location_name", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_manual", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_checkins_user_id"), "checkins", ["user_id"], unique=False)
    op.create_index(op.f("ix_checkins_timestamp"), "checkins", ["timestamp"], unique=False)

    op.create_table(
        "circle_links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("checker_id", sa.Integer(), nullable=False),
        sa.Column("supporter_id", sa.Integer(), nullable=False),
        sa.Column("supporter_display_name", sa.String(100), nullable=True),
        sa.Column("supporter_phone", sa.String(20), nullable=True),
        sa.Column("supporter_email", sa.String(255), nullable=True),
        sa.Column("can_see_mood", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_see_location", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_see_selfie", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_poke", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("alert_priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("alert_via_push", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("alert_via_sms", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("alert_via_email", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_emergency_contact", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["checker_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supporter_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("checker_id", "supporter_id", name="uq_circle_link_checker_supporter"),
    )
    op.create_index(op.f("ix_circle_links_checker_id"), "circle_links", ["checker_id"], unique=False)
    op.create_index(op.f("ix_circle_links_supporter_id"), "circle_links", ["supporter_id"], unique=False)

    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("checker_id", sa.Integer(), nullable=True),
        sa.Column("checker_name", sa.String(100), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("missed_window_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("missed_day", sa.Date(), nullable=False),
        sa.Column("open_day", sa.Date(), nullable=True),
        sa.Column("last_checkin_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_known_location", sa.String(255), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("acknowledged_by", sa.Integer(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("resolution", sa.String(20), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("notified_supporter_ids", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["checker_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["acknowledged_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["resolved_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("checker_id", "open_day", name="uq_alert_open_checker_day"),
    )
    op.create_index(op.f("ix_alerts_checker_id"), "alerts", ["checker_id"], unique=False)

    op.create_table(
        "notification_attempts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("recipient_id", sa.Integer(), nullable=True),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("error_code", sa.String(50), nullable=True),
        sa.Column("provider_message_id", sa.String(100), nullable=True),
        sa.Column("is_fallback", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["alert_id"], ["alerts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notification_attempts_alert_id"), "notification_attempts", ["alert_id"], unique=False)
    op.create_index(
        op.f("ix_notification_attempts_recipient_id"), "notification_attempts", ["recipient_id"], unique=False
    )
    op.create_index(
        op.f("ix_notification_attempts_provider_message_id"),
        "notification_attempts",
        ["provider_message_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("notification_attempts")
    op.drop_table("alerts")
    op.drop_table("circle_links")
    op.drop_table("checkins")
    op.drop_table("schedules")
    op.drop_table("push_tokens")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
