"""create models, benchmarks, model_benchmark_scores and score_import_jobs tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "models",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_models_provider", "models", ["provider"], unique=False)
    op.create_index("ix_models_is_active", "models", ["is_active"], unique=False)

    op.create_table(
        "benchmarks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("benchmark_name", sa.String(length=100), nullable=False),
        sa.Column("full_name", sa.String(length=300), nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("interpretation", sa.String(length=20), nullable=False),
        sa.Column("typical_range_min", sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column("typical_range_max", sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column("weight_in_qaps", sa.Numeric(precision=3, scale=2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_benchmarks_is_active", "benchmarks", ["is_active"], unique=False)
    op.create_index(
        "uq_benchmarks_name_lower",
        "benchmarks",
        [sa.text("lower(benchmark_name)")],
        unique=True,
    )

    op.create_table(
        "model_benchmark_scores",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("benchmark_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("score", sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column("max_score", sa.Numeric(precision=6, scale=2), nullable=True),
        sa.Column("normalized_score", sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column("is_out_of_range", sa.Boolean(), nullable=False),
        sa.Column("test_date", sa.Date(), nullable=True),
        sa.Column("source_url", sa.String(length=500), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["benchmark_id"], ["benchmarks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("model_id", "benchmark_id", name="uq_model_benchmark_scores_model_benchmark"),
    )
    op.create_index(
        "ix_model_benchmark_scores_model_id",
        "model_benchmark_scores",
        ["model_id"],
        unique=False,
    )
    op.create_index(
        "ix_model_benchmark_scores_benchmark_id",
        "model_benchmark_scores",
        ["benchmark_id"],
        unique=False,
    )

    op.create_table(
        "score_import_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_size_bytes", sa.Integer(), nullable=False),
        sa.Column("duplicate_mode", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("successful_imports", sa.Integer(), nullable=False),
        sa.Column("failed_imports", sa.Integer(), nullable=False),
        sa.Column("skipped_duplicates", sa.Integer(), nullable=False),
        sa.Column("result_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_score_import_jobs_status", "score_import_jobs", ["status"], unique=False)
    op.create_index("ix_score_import_jobs_created_at", "score_import_jobs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_score_import_jobs_created_at", table_name="score_import_jobs")
    op.drop_index("ix_score_import_jobs_status", table_name="score_import_jobs")
    op.drop_table("score_import_jobs")

    op.drop_index("ix_model_benchmark_scores_benchmark_id", table_name="model_benchmark_scores")
    op.drop_index("ix_model_benchmark_scores_model_id", table_name="model_benchmark_scores")
    op.drop_table("model_benchmark_scores")

    op.drop_index("uq_benchmarks_name_lower", table_name="benchmarks")
    op.drop_index("ix_benchmarks_is_active", table_name="benchmarks")
    op.drop_table("benchmarks")

    op.drop_index("ix_models_is_active", table_name="models")
    op.drop_index("ix_models_provider", table_name="models")
    op.drop_table("models")
