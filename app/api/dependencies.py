"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import uuid

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.errors import NotFoundError, UnauthorizedError
from db.repositories.organization_repository import OrganizationRepository
from db.session import get_db

ORGANIZATION_HEADER = "X-Organization-ID"


def get_organization_id(
    x_organization_id: str | None = Header(default=None, alias=ORGANIZATION_HEADER),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """
    Resolve the caller's organization from the ``X-Organization-ID`` header.

    A missing or unparsable header is unauthorized; an unknown or inactive
    organization is not found.
    """

    raw = (x_organization_id or "").strip()
    if not raw:
        raise UnauthorizedError(f"Missing {ORGANIZATION_HEADER} header")
    try:
        organization_id = uuid.UUID(raw)
    except ValueError as exc:
        raise UnauthorizedError(f"Invalid {ORGANIZATION_HEADER} header") from exc

    organization = OrganizationRepository(db).get(organization_id)
    if organization is None or not organization.is_active:
        raise NotFoundError("Organization not found")
    return organization_id
