"""
audit/hashing.py

Deterministic hashing for audit chain entries.

Request parameters and result summaries are hashed over their canonical
JSON form so the same logical payload always yields the same digest,
regardless of dict ordering or whitespace.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

GENESIS_HASH = "0" * 64


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json(data: Any) -> str:
    """
    Render *data* as canonical JSON: sorted keys, no whitespace.
    """

    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def sha256_hex(data: Any) -> str:
    """
    SHA-256 over the canonical JSON of *data*, hex encoded (64 characters).
    """

    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
