"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    schedule_status_enum = sa.Enum(
        "active", "processing", "failed", name="schedule_status_enum"
    )
    schedule_status_enum.create(op.get_bind(), checkfirst=True)

    upload_status_enum = sa.Enum("completed", "failed", name="upload_status_enum")
    upload_status_enum.create(op.get_bind(), checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("first_name", sa.String(128), nullable=True),
        sa.Column("last_name", sa.String(128), nullable=True),
        sa.Column("profile_picture", sa.String(1024), nullable=True),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_memoir_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("opener", sa.Text(), nullable=True),
        sa.Column("feeling_intent", sa.Text(), nullable=True),
        sa.Column("voice_style", sa.String(32), nullable=True),
        sa.Column("writing_style", sa.String(32), nullable=True),
        sa.Column("candor_level", sa.String(32), nullable=True),
        sa.Column("humor_style", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_is_memoir_public", "users", ["is_memoir_public"])

    # --- captures ---
    op.create_table(
        "captures",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("transcript", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "content", sa.Text(), nullable=True,
            comment="JSON array of editor blocks: {type, content, props?}",
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("content_revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_captures_id", "captures", ["id"])
    op.create_index("ix_captures_owner_id", "captures", ["owner_id"])
    op.create_index("ix_captures_is_public", "captures", ["is_public"])
    op.create_index("ix_captures_created_at", "captures", ["created_at"])
    op.create_index("ix_captures_updated_at", "captures", ["updated_at"])

    # --- narrative_entries ---
    op.create_table(
        "narrative_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("capture_id", sa.Integer(), sa.ForeignKey("captures.id"), nullable=False),
        sa.Column("date", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_narrative_entries_id", "narrative_entries", ["id"])
    op.create_index("ix_narrative_entries_owner_id", "narrative_entries", ["owner_id"])
    op.create_index("ix_narrative_entries_capture_id", "narrative_entries", ["capture_id"])
    op.create_index("ix_narrative_entries_date", "narrative_entries", ["date"])
    op.create_index("ix_narrative_entries_is_public", "narrative_entries", ["is_public"])

    # --- synthesis_schedules ---
    op.create_table(
        "synthesis_schedules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("capture_id", sa.Integer(), sa.ForeignKey("captures.id"), nullable=False),
        sa.Column("run_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Enum(
            "active", "processing", "failed",
            name="schedule_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("job_handle", sa.String(64), nullable=True),
        sa.Column("source_revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_synthesis_schedules_id", "synthesis_schedules", ["id"])
    op.create_index("ix_synthesis_schedules_owner_id", "synthesis_schedules", ["owner_id"])
    op.create_index("ix_synthesis_schedules_capture_id", "synthesis_schedules", ["capture_id"])
    op.create_index("ix_synthesis_schedules_status", "synthesis_schedules", ["status"])

    # --- voice_uploads ---
    op.create_table(
        "voice_uploads",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("capture_id", sa.Integer(), nullable=True),
        sa.Column("blob_handle", sa.String(64), nullable=False),
        sa.Column("status", sa.Enum(
            "completed", "failed",
            name="upload_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_voice_uploads_id", "voice_uploads", ["id"])
    op.create_index("ix_voice_uploads_owner_id", "voice_uploads", ["owner_id"])
    op.create_index("ix_voice_uploads_capture_id", "voice_uploads", ["capture_id"])
    op.create_index("ix_voice_uploads_status", "voice_uploads", ["status"])
    op.create_index("ix_voice_uploads_created_at", "voice_uploads", ["created_at"])


def downgrade() -> None:
    op.drop_table("voice_uploads")
    op.drop_table("synthesis_schedules")
    op.drop_table("narrative_entries")
    op.drop_table("captures")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS upload_status_enum")
    op.execute("DROP TYPE IF EXISTS schedule_status_enum")
