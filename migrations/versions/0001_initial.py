from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "trainers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("expertise", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "roundtables",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="SETUP"),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("session_duration", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("session_frequency", sa.String(length=16), nullable=True),
        sa.Column("questions_min", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("questions_max", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("voting_opened_at", sa.DateTime(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_roundtables_client_id", "roundtables", ["client_id"])
    op.create_index("ix_roundtables_status", "roundtables", ["status"])

    op.create_table(
        "topics",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("roundtable_id", sa.String(length=36), sa.ForeignKey("roundtables.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_selected", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("roundtable_id", "position", name="uq_topic_position"),
    )
    op.create_index("ix_topics_roundtable_id", "topics", ["roundtable_id"])

    op.create_table(
        "participants",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("roundtable_id", sa.String(length=36), sa.ForeignKey("roundtables.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("roundtable_id", "email", name="uq_participant_email"),
    )
    op.create_index("ix_participants_roundtable_id", "participants", ["roundtable_id"])

    op.create_table(
        "topic_votes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("roundtable_id", sa.String(length=36), sa.ForeignKey("roundtables.id"), nullable=False),
        sa.Column("participant_id", sa.String(length=36), sa.ForeignKey("participants.id"), nullable=False),
        sa.Column("topic_id", sa.String(length=36), sa.ForeignKey("topics.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("participant_id", "topic_id", name="uq_vote_participant_topic"),
    )
    op.create_index("ix_topic_votes_roundtable_id", "topic_votes", ["roundtable_id"])
    op.create_index("ix_topic_votes_participant_id", "topic_votes", ["participant_id"])
    op.create_index("ix_topic_votes_topic_id", "topic_votes", ["topic_id"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("roundtable_id", sa.String(length=36), sa.ForeignKey("roundtables.id"), nullable=False),
        sa.Column("session_number", sa.Integer(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="SCHEDULED"),
        sa.Column("questions_status", sa.String(length=32), nullable=False, server_default="NOT_SUBMITTED"),
        sa.Column("topic_id", sa.String(length=36), sa.ForeignKey("topics.id"), nullable=True),
        sa.Column("trainer_id", sa.String(length=36), sa.ForeignKey("trainers.id"), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("roundtable_id", "session_number", name="uq_session_number"),
    )
    op.create_index("ix_sessions_roundtable_id", "sessions", ["roundtable_id"])
    op.create_index("ix_sessions_scheduled_at", "sessions", ["scheduled_at"])
    op.create_index("ix_sessions_trainer_id", "sessions", ["trainer_id"])

    op.create_table(
        "questions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("sessions.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="PENDING"),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_questions_session_id", "questions", ["session_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(length=64), nullable=False),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_kind", "notifications", ["kind"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("questions")
    op.drop_table("sessions")
    op.drop_table("topic_votes")
    op.drop_table("participants")
    op.drop_table("topics")
    op.drop_table("roundtables")
    op.drop_table("trainers")
    op.drop_table("clients")
