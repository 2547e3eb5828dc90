"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "voters",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("voter_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("aci_id", sa.Integer(), nullable=True),
        sa.Column("booth_id", sa.String(length=64), nullable=True),
        sa.Column("address_fields", sa.JSON(), nullable=True),
        sa.Column("family_id", sa.String(length=64), nullable=True),
        sa.Column("surveyed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("surveyed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("voter_id"),
    )
    op.create_index("ix_voters_aci_id", "voters", ["aci_id"])
    op.create_index("ix_voters_booth_id", "voters", ["booth_id"])
    op.create_index("ix_voters_family_id", "voters", ["family_id"])

    op.create_table(
        "survey_forms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("form_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("status", sa.String(length=32), server_default=sa.text("'Active'"), nullable=False),
        sa.Column("assigned_acs", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("form_id"),
    )

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("form_id", sa.String(length=128), nullable=False),
        sa.Column("respondent_id", sa.String(length=128), nullable=True),
        sa.Column("respondent_voter_id", sa.String(length=64), nullable=True),
        sa.Column("respondent_name", sa.String(length=256), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("is_complete", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_responses_form_id", "survey_responses", ["form_id"])
    op.create_index("ix_survey_responses_respondent_voter_id", "survey_responses", ["respondent_voter_id"])

    op.create_table(
        "resolution_runs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("initiated_by", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=32), server_default=sa.text("'running'"), nullable=False),
        sa.Column("families_created", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("voters_updated", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("voters_unkeyed", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("voters_unassigned", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("failed_voter_ids", sa.JSON(), nullable=True),
        sa.Column("failed_assignments", sa.JSON(), nullable=True),
        sa.Column("error_summary", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "resolution_locks",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("holder", sa.String(length=128), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("resolution_locks")
    op.drop_table("resolution_runs")
    op.drop_index("ix_survey_responses_respondent_voter_id", table_name="survey_responses")
    op.drop_index("ix_survey_responses_form_id", table_name="survey_responses")
    op.drop_table("survey_responses")
    op.drop_table("survey_forms")
    op.drop_index("ix_voters_family_id", table_name="voters")
    op.drop_index("ix_voters_booth_id", table_name="voters")
    op.drop_index("ix_voters_aci_id", table_name="voters")
    op.drop_table("voters")
