"""
app/api/routers/workflow_router.py

End-to-end workflow endpoint.

The workflow commits each successful step itself, so partial progress
survives a later failure.  The response is HTTP 200 for both ``success``
and ``partial`` runs; the step trace says which step failed.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import WorkflowRunRequest, WorkflowRunResponse
from app.services.workflow_service import WorkflowService
from db.session import get_db

router = APIRouter(prefix="/esg/workflow", tags=["workflow"])


@router.post(
    "/run",
    response_model=WorkflowRunResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
def run_workflow(
    body: WorkflowRunRequest | None = Body(default=None),
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> WorkflowRunResponse:
    profile_id = body.profile_id if body is not None else None
    trace = WorkflowService(db).run(organization_id, profile_id)
    return WorkflowRunResponse.model_validate(trace)
