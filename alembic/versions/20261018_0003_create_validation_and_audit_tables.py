"""create esg_validation_results and esg_ingestion_audit tables

The audit table rejects UPDATE and DELETE at the database level as well as
through the ORM listeners.

Revision ID: 20261018_0003
Revises: 20261018_0002
Create Date: 2026-10-18 09:20:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0003"
down_revision = "20261018_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "esg_validation_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("run_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("check_type", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, comment="pass, warning, fail"),
        sa.Column("severity", sa.String(length=16), nullable=False,
                  comment="low, medium, high, critical"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "affected_kpis",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "validated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_esg_validation_results_org_validated",
        "esg_validation_results",
        ["organization_id", "validated_at"],
        unique=False,
    )
    op.create_index(
        "ix_esg_validation_results_run_id",
        "esg_validation_results",
        ["run_id"],
        unique=False,
    )

    op.create_table(
        "esg_ingestion_audit",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("input_hash", sa.CHAR(length=64), nullable=False),
        sa.Column("output_hash", sa.CHAR(length=64), nullable=False),
        sa.Column("prev_hash", sa.CHAR(length=64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_esg_ingestion_audit_org_occurred",
        "esg_ingestion_audit",
        ["organization_id", "occurred_at"],
        unique=False,
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION esg_ingestion_audit_append_only()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'esg_ingestion_audit is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER esg_ingestion_audit_no_update
        BEFORE UPDATE ON esg_ingestion_audit
        FOR EACH ROW EXECUTE FUNCTION esg_ingestion_audit_append_only();
        """
    )
    op.execute(
        """
        CREATE TRIGGER esg_ingestion_audit_no_delete
        BEFORE DELETE ON esg_ingestion_audit
        FOR EACH ROW EXECUTE FUNCTION esg_ingestion_audit_append_only();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS esg_ingestion_audit_no_delete ON esg_ingestion_audit")
    op.execute("DROP TRIGGER IF EXISTS esg_ingestion_audit_no_update ON esg_ingestion_audit")
    op.execute("DROP FUNCTION IF EXISTS esg_ingestion_audit_append_only()")
    op.drop_index("ix_esg_ingestion_audit_org_occurred", table_name="esg_ingestion_audit")
    op.drop_table("esg_ingestion_audit")
    op.drop_index("ix_esg_validation_results_run_id", table_name="esg_validation_results")
    op.drop_index("ix_esg_validation_results_org_validated", table_name="esg_validation_results")
    op.drop_table("esg_validation_results")
