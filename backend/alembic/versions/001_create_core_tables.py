"""Create documents, tasks, notes and user_preferences

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  The whole OptSolv schema: uploaded documents, the tasks and notes
       classified out of them, and per-user UI preferences.
How:   PostgreSQL-specific pieces live here rather than on the models:
       gen_random_uuid() and CURRENT_TIMESTAMP server defaults, JSONB for
       the analysis, and row-level security.

Row-level security:
    Each table gets an owner policy comparing user_id with the
    `app.current_user_id` setting. The application role also filters on
    user_id in every query; the policy protects any other client that
    connects with a non-owner role.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OWNED_TABLES = ("documents", "tasks", "notes", "user_preferences")


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("image_url", sa.String(1024), nullable=False),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("analysis", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_documents_user_created",
        "documents",
        ["user_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "tasks",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("priority", sa.String(20), nullable=True),
        sa.Column("due_date", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.CheckConstraint("status IN ('pending', 'completed')", name="ck_tasks_status"),
        sa.CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="ck_tasks_priority",
        ),
    )
    op.create_index("idx_tasks_user_created", "tasks", ["user_id", sa.text("created_at DESC")])
    op.create_index("idx_tasks_document", "tasks", ["document_id"])

    op.create_table(
        "notes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_notes_user_created", "notes", ["user_id", sa.text("created_at DESC")])
    op.create_index("idx_notes_document", "notes", ["document_id"])

    op.create_table(
        "user_preferences",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "preferred_locale",
            sa.String(10),
            server_default=sa.text("'pt-BR'"),
            nullable=False,
        ),
        sa.Column(
            "task_filter",
            sa.String(20),
            server_default=sa.text("'all'"),
            nullable=False,
        ),
        sa.Column(
            "sidebar_open",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id"),
        sa.CheckConstraint(
            "preferred_locale IN ('pt-BR', 'en-US')", name="ck_user_preferences_locale"
        ),
        sa.CheckConstraint(
            "task_filter IN ('all', 'pending', 'completed')",
            name="ck_user_preferences_task_filter",
        ),
    )

    for table in OWNED_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(
            f"CREATE POLICY {table}_owner ON {table} "
            f"USING (user_id = current_setting('app.current_user_id', true)::uuid) "
            f"WITH CHECK (user_id = current_setting('app.current_user_id', true)::uuid)"
        )


def downgrade() -> None:
    for table in OWNED_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {table}_owner ON {table}")

    op.drop_table("user_preferences")
    op.drop_index("idx_notes_document", table_name="notes")
    op.drop_index("idx_notes_user_created", table_name="notes")
    op.drop_table("notes")
    op.drop_index("idx_tasks_document", table_name="tasks")
    op.drop_index("idx_tasks_user_created", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("idx_documents_user_created", table_name="documents")
    op.drop_table("documents")
