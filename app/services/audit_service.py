"""
app/services/audit_service.py

Audit hash-chain recorder and chain verifier.

Every pipeline step appends one entry to its organization's chain::

    input_hash  = sha256(canonical_json(request))
    output_hash = sha256(canonical_json(result))
    prev_hash   = output_hash of the latest entry, or 64 zeros for the first

Appends for one organization are serialized with a transaction-scoped
advisory lock, so two concurrent steps can never both link to the same
predecessor.  ``occurred_at`` is strictly increasing per organization.

Neither class commits; the caller owns the transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from sqlalchemy.orm import Session

from app.errors import IntegrityViolationError
from audit.chain import ChainVerification, verify_chain
from audit.hashing import GENESIS_HASH, sha256_hex
from db.base import utc_now
from db.models.audit_entry import AuditEntry
from db.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)

CHAIN_VERIFICATION_EVENT = "chain_verification"

_CLOCK_RESOLUTION = timedelta(microseconds=1)


class AuditRecorder:
    """
    Appends entries to an organization's audit chain.
    """

    def __init__(
        self,
        repository: AuditRepository,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._clock = clock

    @classmethod
    def from_session(cls, session: Session) -> "AuditRecorder":
        return cls(AuditRepository(session))

    def record(
        self,
        organization_id: uuid.UUID,
        event_type: str,
        *,
        request: Any,
        result: Any,
        metadata: Mapping[str, Any] | None = None,
    ) -> AuditEntry:
        """
        Append one entry linking to the organization's latest entry.

        Parameters
        ----------
        organization_id:
            Chain owner.
        event_type:
            Pipeline step name, e.g. ``"run_mapping"``.
        request, result:
            JSON-serializable step input and output; only their hashes are
            stored.
        metadata:
            Small JSON payload kept verbatim on the entry.
        """
        self._repository.lock_chain(organization_id)
        latest = self._repository.get_latest(organization_id)

        occurred_at = self._clock()
        if latest is None:
            prev_hash = GENESIS_HASH
        else:
            prev_hash = latest.output_hash
            if occurred_at <= latest.occurred_at:
                occurred_at = latest.occurred_at + _CLOCK_RESOLUTION

        entry = AuditEntry(
            id=uuid.uuid4(),
            organization_id=organization_id,
            event_type=event_type,
            input_hash=sha256_hex(request),
            output_hash=sha256_hex(result),
            prev_hash=prev_hash,
            occurred_at=occurred_at,
            metadata_json=dict(metadata) if metadata is not None else None,
        )
        self._repository.add(entry)
        logger.debug(
            "Audit entry %s appended for organization %s (%s)",
            entry.id,
            organization_id,
            event_type,
        )
        return entry


class ChainVerifier:
    """
    Walks an organization's chain and reports broken links.

    Broken chains are never repaired.  They are logged at CRITICAL and the
    verification itself is appended to the chain as a
    ``chain_verification`` entry.
    """

    def __init__(self, repository: AuditRepository, recorder: AuditRecorder) -> None:
        self._repository = repository
        self._recorder = recorder

    @classmethod
    def from_session(cls, session: Session) -> "ChainVerifier":
        repository = AuditRepository(session)
        return cls(repository, AuditRecorder(repository))

    def verify(
        self,
        organization_id: uuid.UUID,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ChainVerification:
        entries = self._repository.list_entries(organization_id, start=start, end=end)

        anchor_hash: str | None = None
        if start is not None and entries:
            predecessor = self._repository.get_predecessor(organization_id, entries[0].occurred_at)
            if predecessor is not None:
                anchor_hash = predecessor.output_hash

        verification = verify_chain(entries, anchor_hash=anchor_hash)
        report = verification.to_dict()

        if verification.is_valid:
            logger.info(
                "Audit chain for organization %s verified (%d entries)",
                organization_id,
                verification.total_entries,
            )
        else:
            logger.critical(
                "Audit chain for organization %s is broken: %d broken link(s), first at entry %s",
                organization_id,
                len(verification.broken_links),
                verification.broken_links[0].entry_id,
            )

        self._recorder.record(
            organization_id,
            CHAIN_VERIFICATION_EVENT,
            request={
                "organization_id": organization_id,
                "start": start,
                "end": end,
            },
            result=report,
            metadata={
                "is_valid": verification.is_valid,
                "total_entries": verification.total_entries,
                "broken_links": len(verification.broken_links),
            },
        )
        return verification


def raise_for_broken_chain(verification: ChainVerification) -> None:
    """
    Raise :class:`IntegrityViolationError` when *verification* found broken links.
    """
    if verification.is_valid:
        return
    raise IntegrityViolationError(
        f"Audit chain integrity violated: {len(verification.broken_links)} broken link(s)",
        broken_links=[link.to_dict() for link in verification.broken_links],
    )
