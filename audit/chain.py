"""
audit/chain.py

Pure hash-chain verification.  No I/O: the caller loads the entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, Sequence

from audit.hashing import GENESIS_HASH


class ChainLink(Protocol):
    id: Any
    prev_hash: str | None
    output_hash: str
    occurred_at: datetime


@dataclass(frozen=True)
class BrokenLink:
    entry_id: str
    expected_hash: str
    actual_hash: str | None
    occurred_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "expected_hash": self.expected_hash,
            "actual_hash": self.actual_hash,
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
        }


@dataclass(frozen=True)
class ChainVerification:
    """
    Outcome of walking one organization's chain over a time window.
    """

    is_valid: bool
    total_entries: int
    broken_links: tuple[BrokenLink, ...] = field(default_factory=tuple)
    first_entry_timestamp: datetime | None = None
    last_entry_timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "total_entries": self.total_entries,
            "broken_links": [link.to_dict() for link in self.broken_links],
            "first_entry_timestamp": _iso(self.first_entry_timestamp),
            "last_entry_timestamp": _iso(self.last_entry_timestamp),
        }


def verify_chain(
    entries: Sequence[ChainLink],
    *,
    anchor_hash: str | None = None,
) -> ChainVerification:
    """
    Check that every entry links to its predecessor's output hash.

    Parameters
    ----------
    entries:
        Entries ordered by ``occurred_at`` ascending.
    anchor_hash:
        Expected ``prev_hash`` of the first entry.  ``None`` means the
        window starts at the head of the chain: the first entry must carry
        the genesis hash (``NULL`` is tolerated as a legacy genesis marker).

    Returns
    -------
    ChainVerification
        ``is_valid`` is ``True`` only when no broken link was found.  An empty
        sequence is trivially valid.
    """
    if not entries:
        return ChainVerification(is_valid=True, total_entries=0)

    broken: list[BrokenLink] = []

    first = entries[0]
    if anchor_hash is None:
        if first.prev_hash not in (GENESIS_HASH, None):
            broken.append(_broken(first, GENESIS_HASH))
    elif first.prev_hash != anchor_hash:
        broken.append(_broken(first, anchor_hash))

    for previous, current in zip(entries, entries[1:]):
        if current.prev_hash != previous.output_hash:
            broken.append(_broken(current, previous.output_hash))

    return ChainVerification(
        is_valid=not broken,
        total_entries=len(entries),
        broken_links=tuple(broken),
        first_entry_timestamp=first.occurred_at,
        last_entry_timestamp=entries[-1].occurred_at,
    )


def _broken(entry: ChainLink, expected: str) -> BrokenLink:
    return BrokenLink(
        entry_id=str(entry.id),
        expected_hash=expected,
        actual_hash=entry.prev_hash,
        occurred_at=entry.occurred_at,
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
