"""Add projects and licenses.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Creates tables for projects and feature licensing:
- projects: Named company containers, personal or team-shared
- project_companies: Project <-> company links
- user_licenses: Per-user subscription tier and feature list
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create project and license tables."""
    op.execute(
        "CREATE TYPE license_type AS ENUM ('free', 'basic', 'professional', 'enterprise')"
    )
    license_type = postgresql.ENUM(
        "free", "basic", "professional", "enterprise", name="license_type", create_type=False
    )

    # Create projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("team_id", sa.String(length=36), nullable=True),
        sa.Column("notes", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_created_by", "projects", ["created_by"])
    op.create_index("ix_projects_team_id", "projects", ["team_id"])

    # Create project_companies table
    op.create_table(
        "project_companies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("project_id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "company_id", name="uq_project_company"),
    )
    op.create_index("ix_project_companies_project_id", "project_companies", ["project_id"])
    op.create_index("ix_project_companies_company_id", "project_companies", ["company_id"])

    # Create user_licenses table
    op.create_table(
        "user_licenses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("team_id", sa.String(length=36), nullable=True),
        sa.Column("license_type", license_type, nullable=False, server_default="free"),
        sa.Column("features", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("starts_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_licenses_user_id", "user_licenses", ["user_id"])


def downgrade() -> None:
    """Drop project and license tables."""
    op.drop_index("ix_user_licenses_user_id", table_name="user_licenses")
    op.drop_table("user_licenses")

    op.drop_index("ix_project_companies_company_id", table_name="project_companies")
    op.drop_index("ix_project_companies_project_id", table_name="project_companies")
    op.drop_table("project_companies")

    op.drop_index("ix_projects_team_id", table_name="projects")
    op.drop_index("ix_projects_created_by", table_name="projects")
    op.drop_table("projects")

    op.execute("DROP TYPE IF EXISTS license_type")
