"""Initial migration

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("path", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("color", sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column("identity_key", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_name", "projects", ["name"], unique=False)
    op.create_index("ix_projects_path", "projects", ["path"], unique=False)
    op.create_index("ix_projects_identity_key", "projects", ["identity_key"], unique=False)
    op.create_index("ix_projects_is_archived", "projects", ["is_archived"], unique=False)

    # Uniqueness holds among active rows only
    op.create_index(
        "uq_projects_active_path",
        "projects",
        ["path"],
        unique=True,
        sqlite_where=sa.text("is_archived = 0"),
        postgresql_where=sa.text("NOT is_archived"),
    )
    op.create_index(
        "uq_projects_active_identity_key",
        "projects",
        ["identity_key"],
        unique=True,
        sqlite_where=sa.text("is_archived = 0 AND identity_key IS NOT NULL"),
        postgresql_where=sa.text("NOT is_archived AND identity_key IS NOT NULL"),
    )

    # 2. Planning items (detached, not deleted, when their project is purged)
    op.create_table(
        "planning_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("subject", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_planning_items_project_id", "planning_items", ["project_id"], unique=False
    )

    # 3. Issue links
    op.create_table(
        "issue_links",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("repository", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("issue_number", sa.Integer(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_issue_links_project_id", "issue_links", ["project_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_issue_links_project_id", table_name="issue_links")
    op.drop_table("issue_links")
    op.drop_index("ix_planning_items_project_id", table_name="planning_items")
    op.drop_table("planning_items")
    op.drop_index("uq_projects_active_identity_key", table_name="projects")
    op.drop_index("uq_projects_active_path", table_name="projects")
    op.drop_index("ix_projects_is_archived", table_name="projects")
    op.drop_index("ix_projects_identity_key", table_name="projects")
    op.drop_index("ix_projects_path", table_name="projects")
    op.drop_index("ix_projects_name", table_name="projects")
    op.drop_table("projects")
