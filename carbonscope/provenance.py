# -*- coding: utf-8 -*-
"""
Provenance Hashing for CarbonScope

Deterministic SHA-256 hashing of calculation payloads. A CalculationRun
stores the hash of its own inputs and results so that exporters and
auditors can detect a run that was edited after it was produced.

Guarantees:
    - Hashes are deterministic SHA-256 over canonical JSON
    - Dict key order never affects the hash (``sort_keys=True``)
    - Datetimes, Decimals and enums are serialised through ``str``

Example:
    >>> from carbonscope.provenance import hash_payload
    >>> hash_payload({"b": 1, "a": 2}) == hash_payload({"a": 2, "b": 1})
    True
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def canonical_json(data: Any) -> str:
    """Serialise ``data`` to canonical JSON (sorted keys, compact separators)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def hash_payload(data: Any) -> str:
    """Return the SHA-256 hex digest of the canonical JSON form of ``data``.

    Args:
        data: Any JSON-serialisable structure. Values JSON cannot encode
            natively are converted with ``str``.

    Returns:
        64-character lowercase hex digest.
    """
    serialized = canonical_json(data)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def verify_payload(data: Any, expected_hash: str) -> bool:
    """Check that ``data`` still hashes to ``expected_hash``."""
    actual = hash_payload(data)
    if actual != expected_hash:
        logger.warning(
            "Provenance mismatch: expected %s, got %s",
            expected_hash[:16], actual[:16],
        )
        return False
    return True


__all__ = ["canonical_json", "hash_payload", "verify_payload"]
