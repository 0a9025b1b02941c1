"""
db/repositories/validation_repository.py

Append-only persistence of validation check results.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from db.models.validation_result import ValidationResultRecord


class ValidationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_results(
        self,
        *,
        organization_id: uuid.UUID,
        run_id: uuid.UUID,
        validated_at: datetime,
        results: Sequence[dict[str, Any]],
    ) -> list[ValidationResultRecord]:
        """
        Append one record per check result; earlier runs are never touched.
        """
        records = [
            ValidationResultRecord(
                id=uuid.uuid4(),
                organization_id=organization_id,
                run_id=run_id,
                check_type=r["check_type"],
                status=r["status"],
                severity=r["severity"],
                message=r["message"],
                affected_kpis=list(r.get("affected_kpis") or []),
                details=dict(r.get("details") or {}),
                validated_at=validated_at,
            )
            for r in results
        ]
        self._session.add_all(records)
        self._session.flush()
        return records
