"""
app/api/routers/audit_router.py

Audit chain verification endpoint.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_organization_id
from app.schemas.esg import AuditVerifyRequest, AuditVerifyResponse
from app.services.audit_service import ChainVerifier, raise_for_broken_chain
from db.session import get_db

router = APIRouter(prefix="/esg/audit", tags=["audit"])


@router.post("/verify", response_model=AuditVerifyResponse, status_code=status.HTTP_200_OK)
def verify_audit_chain(
    body: AuditVerifyRequest,
    organization_id: uuid.UUID = Depends(get_organization_id),
    db: Session = Depends(get_db),
) -> AuditVerifyResponse:
    """
    Verify the organization's audit hash chain over an optional window.

    The verification is itself recorded and committed before the response
    is built.  With ``strict`` set, a broken chain returns HTTP 409 instead
    of a report with ``is_valid = false``.
    """
    verification = ChainVerifier.from_session(db).verify(
        organization_id,
        start=body.start_date,
        end=body.end_date,
    )
    db.commit()

    if body.strict:
        raise_for_broken_chain(verification)
    return AuditVerifyResponse.model_validate(verification.to_dict())
