"""
app/api/routers/mapping_router.py

Mapping run endpoint.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import MappingRunRequest, MappingRunResponse
from app.services.mapping_service import MappingService
from db.session import get_db

router = APIRouter(prefix="/esg/mapping", tags=["mapping"])


@router.post("/run", response_model=MappingRunResponse, status_code=status.HTTP_200_OK)
def run_mapping(
    body: MappingRunRequest,
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> MappingRunResponse:
    """
    Project the organization's staging rows through one mapping profile.

    Skipped fields and rows are reported in the payload; the response is
    still HTTP 200.
    """
    result = MappingService.from_session(db).run(organization_id, body.profile_id)
    db.commit()
    return MappingRunResponse.model_validate(result.to_dict())
