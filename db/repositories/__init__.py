"""
Repository layer exports.
"""

from db.repositories.audit_repository import AuditRepository
from db.repositories.kpi_result_repository import KPIResultRepository
from db.repositories.kpi_rule_repository import KPIRuleRepository
from db.repositories.lineage_repository import LineageRepository
from db.repositories.mapping_repository import MappingRepository
from db.repositories.organization_repository import OrganizationRepository
from db.repositories.staging_repository import StagingRepository
from db.repositories.validation_repository import ValidationRepository

__all__ = [
    "AuditRepository",
    "KPIResultRepository",
    "KPIRuleRepository",
    "LineageRepository",
    "MappingRepository",
    "OrganizationRepository",
    "StagingRepository",
    "ValidationRepository",
]
