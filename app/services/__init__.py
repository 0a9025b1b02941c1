"""
app/services package marker.
"""

from app.services.audit_service import AuditRecorder, ChainVerifier, raise_for_broken_chain
from app.services.kpi_evaluation_service import EvaluationRunResult, KPIEvaluationService
from app.services.mapping_service import MappingRunResult, MappingService
from app.services.validation_service import ValidationService
from app.services.workflow_service import WorkflowService

__all__ = [
    "AuditRecorder",
    "ChainVerifier",
    "raise_for_broken_chain",
    "EvaluationRunResult",
    "KPIEvaluationService",
    "MappingRunResult",
    "MappingService",
    "ValidationService",
    "WorkflowService",
]
