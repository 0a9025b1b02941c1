"""
app/api/routers/validation_router.py

Data-quality validation endpoint.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import ValidationRunResponse
from app.services.validation_service import ValidationService
from db.session import get_db

router = APIRouter(prefix="/esg/validation", tags=["validation"])


@router.post("/run", response_model=ValidationRunResponse, status_code=status.HTTP_200_OK)
def run_validation(
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> ValidationRunResponse:
    """
    Run all checks over the organization's current KPI results.

    Failing checks are data findings, not request errors: the response is
    HTTP 200 with the findings in ``results``.
    """
    payload = ValidationService.from_session(db).validate(organization_id)
    db.commit()
    return ValidationRunResponse.model_validate(payload)
