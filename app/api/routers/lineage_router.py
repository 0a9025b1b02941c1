"""
app/api/routers/lineage_router.py

Read access to aggregated lineage edges.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import LineageEdgeResponse, LineageListResponse
from db.repositories.lineage_repository import LineageRepository
from db.session import get_db

router = APIRouter(prefix="/esg/lineage", tags=["lineage"])


@router.get("", response_model=LineageListResponse)
def list_lineage(
    metric_code: str | None = Query(default=None),
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> LineageListResponse:
    edges = LineageRepository(db).list_edges(organization_id, metric_code=metric_code)
    return LineageListResponse(edges=[LineageEdgeResponse.model_validate(edge) for edge in edges])
