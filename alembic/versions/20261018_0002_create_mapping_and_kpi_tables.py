"""create mapping, KPI rule, KPI result and lineage tables

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 09:10:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "mapping_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False,
                  comment="Human-readable profile name"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_mapping_profiles_organization_id",
        "mapping_profiles",
        ["organization_id"],
        unique=False,
    )

    op.create_table(
        "mapping_tables",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("connector_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_table", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["mapping_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["connector_id"], ["connectors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("profile_id", "source_table", name="uq_mapping_tables_profile_table"),
    )

    op.create_table(
        "mapping_fields",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_table", sa.String(length=255), nullable=False),
        sa.Column("source_column", sa.String(length=255), nullable=False),
        sa.Column("target_metric_code", sa.String(length=120), nullable=False,
                  comment="Canonical metric code, e.g. E1-1.scope1"),
        sa.Column("transform", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("unit", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["profile_id"], ["mapping_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mapping_fields_profile_id", "mapping_fields", ["profile_id"], unique=False)
    op.create_index(
        "ix_mapping_fields_profile_active",
        "mapping_fields",
        ["profile_id", "is_active"],
        unique=False,
    )

    op.create_table(
        "esg_kpi_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("metric_code", sa.String(length=120), nullable=False),
        sa.Column("formula", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "metric_code", name="uq_esg_kpi_rules_org_metric"),
    )
    op.create_index(
        "ix_esg_kpi_rules_org_active",
        "esg_kpi_rules",
        ["organization_id", "active"],
        unique=False,
    )

    op.create_table(
        "esg_kpi_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("metric_code", sa.String(length=120), nullable=False),
        sa.Column("period", sa.String(length=64), nullable=False,
                  comment="Reporting period key; 'unknown' when the source row had none"),
        sa.Column("value", sa.Double(), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=True),
        sa.Column("lineage", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("quality_score", sa.Double(), nullable=True),
        sa.Column("source_profile_id", postgresql.UUID(as_uuid=True), nullable=True,
                  comment="Mapping profile that produced the value, when mapped directly"),
        sa.Column(
            "computed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "metric_code",
            "period",
            name="uq_esg_kpi_results_org_metric_period",
        ),
    )
    op.create_index(
        "ix_esg_kpi_results_organization_id",
        "esg_kpi_results",
        ["organization_id"],
        unique=False,
    )
    op.create_index(
        "ix_esg_kpi_results_org_metric",
        "esg_kpi_results",
        ["organization_id", "metric_code"],
        unique=False,
    )

    op.create_table(
        "data_lineage_edges",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_ref", sa.String(length=512), nullable=False),
        sa.Column("to_ref", sa.String(length=120), nullable=False),
        sa.Column("relation_type", sa.String(length=64), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "periods",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "from_ref",
            "to_ref",
            "relation_type",
            name="uq_data_lineage_edges_org_from_to_relation",
        ),
    )
    op.create_index(
        "ix_data_lineage_edges_org_to_ref",
        "data_lineage_edges",
        ["organization_id", "to_ref"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_data_lineage_edges_org_to_ref", table_name="data_lineage_edges")
    op.drop_table("data_lineage_edges")
    op.drop_index("ix_esg_kpi_results_org_metric", table_name="esg_kpi_results")
    op.drop_index("ix_esg_kpi_results_organization_id", table_name="esg_kpi_results")
    op.drop_table("esg_kpi_results")
    op.drop_index("ix_esg_kpi_rules_org_active", table_name="esg_kpi_rules")
    op.drop_table("esg_kpi_rules")
    op.drop_index("ix_mapping_fields_profile_active", table_name="mapping_fields")
    op.drop_index("ix_mapping_fields_profile_id", table_name="mapping_fields")
    op.drop_table("mapping_fields")
    op.drop_table("mapping_tables")
    op.drop_index("ix_mapping_profiles_organization_id", table_name="mapping_profiles")
    op.drop_table("mapping_profiles")
