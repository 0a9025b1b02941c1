"""
app/api/routers package marker.
"""

from app.api.routers.audit_router import router as audit_router
from app.api.routers.kpi_router import router as kpi_router
from app.api.routers.lineage_router import router as lineage_router
from app.api.routers.mapping_router import router as mapping_router
from app.api.routers.validation_router import router as validation_router
from app.api.routers.workflow_router import router as workflow_router

__all__ = [
    "audit_router",
    "kpi_router",
    "lineage_router",
    "mapping_router",
    "validation_router",
    "workflow_router",
]
