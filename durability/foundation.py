# SPDX-License-Identifier: Apache-2.0
"""Canonical serialization, digests and UTC clock helpers for audit records."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from hashlib import sha256
from typing import Any

GENESIS_HASH = "0" * 64


def canonical_json(payload: Any) -> str:
    """Sorted keys, compact separators; stable across runs and platforms."""

    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)


def sha256_digest(payload: Any) -> str:
    if isinstance(payload, (bytes, bytearray)):
        material = bytes(payload)
    elif isinstance(payload, str):
        material = payload.encode("utf-8")
    else:
        material = canonical_json(payload).encode("utf-8")
    return sha256(material).hexdigest()


def chain_hash(prev_hash: str, entry: Any) -> str:
    return sha256_digest(prev_hash + canonical_json(entry))


def utc_now_iso(now: datetime | None = None) -> str:
    ts = now or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


__all__ = ["GENESIS_HASH", "canonical_json", "sha256_digest", "chain_hash", "utc_now_iso"]
