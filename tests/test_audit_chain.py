"""
tests/test_audit_chain.py

Canonical hashing and pure chain verification.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import event

from audit.chain import verify_chain
from audit.hashing import GENESIS_HASH, canonical_json, sha256_hex
from db.models import audit_entry
from db.models.audit_entry import AuditEntry

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _chain(length: int) -> list[SimpleNamespace]:
    entries: list[SimpleNamespace] = []
    prev = GENESIS_HASH
    for i in range(length):
        output = sha256_hex({"step": i})
        entries.append(
            SimpleNamespace(
                id=uuid.uuid4(),
                prev_hash=prev,
                output_hash=output,
                occurred_at=T0 + timedelta(minutes=i),
            )
        )
        prev = output
    return entries


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class TestCanonicalJson:
    def test_keys_are_sorted_and_compact(self) -> None:
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_key_order_does_not_change_the_hash(self) -> None:
        assert sha256_hex({"a": 1, "b": 2}) == sha256_hex({"b": 2, "a": 1})

    def test_special_types_are_rendered_as_strings(self) -> None:
        ident = uuid.UUID("00000000-0000-0000-0000-000000000001")
        rendered = canonical_json({"id": ident, "at": T0, "amount": Decimal("1.50")})
        assert rendered == (
            '{"amount":"1.5","at":"2024-01-01T00:00:00+00:00",'
            '"id":"00000000-0000-0000-0000-000000000001"}'
        )

    def test_hash_is_sha256_hex(self) -> None:
        digest = sha256_hex({})
        assert len(digest) == 64
        assert digest == "44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"

    def test_genesis_is_64_zeros(self) -> None:
        assert GENESIS_HASH == "0" * 64


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class TestVerifyChain:
    def test_empty_chain_is_valid(self) -> None:
        result = verify_chain([])
        assert result.is_valid
        assert result.total_entries == 0
        assert result.first_entry_timestamp is None

    def test_intact_chain(self) -> None:
        entries = _chain(4)
        result = verify_chain(entries)

        assert result.is_valid
        assert result.total_entries == 4
        assert result.first_entry_timestamp == entries[0].occurred_at
        assert result.last_entry_timestamp == entries[-1].occurred_at

    def test_break_at_entry_two(self) -> None:
        entries = _chain(3)
        entries[1].prev_hash = "f" * 64

        result = verify_chain(entries)

        assert not result.is_valid
        assert len(result.broken_links) == 1
        link = result.broken_links[0]
        assert link.entry_id == str(entries[1].id)
        assert link.expected_hash == entries[0].output_hash
        assert link.actual_hash == "f" * 64

    def test_first_entry_must_link_to_genesis(self) -> None:
        entries = _chain(2)
        entries[0].prev_hash = "a" * 64

        result = verify_chain(entries)

        assert not result.is_valid
        assert result.broken_links[0].expected_hash == GENESIS_HASH

    def test_null_prev_hash_is_accepted_as_legacy_genesis(self) -> None:
        entries = _chain(2)
        entries[0].prev_hash = None
        assert verify_chain(entries).is_valid

    def test_window_is_anchored_on_predecessor(self) -> None:
        entries = _chain(4)
        window = entries[2:]

        assert verify_chain(window, anchor_hash=entries[1].output_hash).is_valid
        assert not verify_chain(window).is_valid

    def test_report_shape(self) -> None:
        entries = _chain(2)
        entries[1].prev_hash = None
        report = verify_chain(entries).to_dict()

        assert set(report) == {
            "is_valid",
            "total_entries",
            "broken_links",
            "first_entry_timestamp",
            "last_entry_timestamp",
        }
        assert report["broken_links"][0]["actual_hash"] is None
        assert report["first_entry_timestamp"] == T0.isoformat()


class TestAuditEntryImmutability:
    @pytest.mark.parametrize(
        "identifier, listener",
        [
            ("before_update", audit_entry._reject_audit_update),
            ("before_delete", audit_entry._reject_audit_delete),
        ],
    )
    def test_listeners_are_registered(self, identifier, listener) -> None:
        assert event.contains(AuditEntry, identifier, listener)
