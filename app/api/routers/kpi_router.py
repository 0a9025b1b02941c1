"""
app/api/routers/kpi_router.py

KPI evaluation and result listing endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import EvaluationRunResponse, KPIResultListResponse, KPIResultResponse
from app.services.kpi_evaluation_service import KPIEvaluationService
from db.repositories.kpi_result_repository import KPIResultRepository
from db.session import get_db

router = APIRouter(prefix="/esg/kpis", tags=["kpi"])


@router.post("/evaluate", response_model=EvaluationRunResponse, status_code=status.HTTP_200_OK)
def evaluate_kpis(
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> EvaluationRunResponse:
    """
    Evaluate every active KPI rule of the organization.

    Raises HTTP 400 when there are no active rules or the rules form a
    dependency cycle.  Individual rule failures are listed in
    ``failed_rules``.
    """
    result = KPIEvaluationService.from_session(db).evaluate(organization_id)
    db.commit()
    return EvaluationRunResponse.model_validate(result.to_dict())


@router.get("/results", response_model=KPIResultListResponse)
def list_kpi_results(
    metric_code: str | None = Query(default=None),
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> KPIResultListResponse:
    rows = KPIResultRepository(db).list_results(organization_id, metric_code=metric_code)
    return KPIResultListResponse(
        results=[KPIResultResponse.model_validate(row) for row in rows],
    )
