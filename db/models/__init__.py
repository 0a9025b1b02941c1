"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.audit_entry import AuditEntry
from db.models.kpi_result import ESGKPIResult
from db.models.kpi_rule import KPIRule
from db.models.lineage_edge import LineageEdge
from db.models.mapping_profile import MappingField, MappingProfile, MappingTable
from db.models.organization import Connector, Organization
from db.models.staging_row import StagingRow
from db.models.validation_result import ValidationResultRecord

__all__ = [
    "Organization",
    "Connector",
    "StagingRow",
    "MappingProfile",
    "MappingTable",
    "MappingField",
    "KPIRule",
    "ESGKPIResult",
    "LineageEdge",
    "ValidationResultRecord",
    "AuditEntry",
]
