"""
Stable hashing and pack fingerprints.

Fingerprints are cheap structural signatures used to decide whether a
persisted index still describes the live packs. They are NOT content hashes:
an in-place edit that keeps the document count unchanged is not detected.
"""

import hashlib
import json
import time
import unicodedata
from datetime import datetime
from typing import Any

from compendium_index.index.schemas import PackFingerprint


CHECKSUM_LENGTH = 16


def stable_hash(obj: dict | list | str | bytes) -> str:
    """
    Compute stable hash of an object.

    - Dicts: sorted by keys, then JSON-serialized
    - Lists: JSON-serialized as-is
    - Strings: NFC-normalized, UTF-8 encoded
    - Bytes: used directly

    Returns:
        64-character hex string (blake2b)

    Examples:
        >>> stable_hash({"b": 2, "a": 1}) == stable_hash({"a": 1, "b": 2})
        True
    """
    if isinstance(obj, (dict, list)):
        canonical = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        data = canonical.encode("utf-8")
    elif isinstance(obj, str):
        data = unicodedata.normalize("NFC", obj).encode("utf-8")
    elif isinstance(obj, bytes):
        data = obj
    else:
        raise TypeError(f"Cannot hash type {type(obj)}: {obj}")

    return hashlib.blake2b(data, digest_size=32).hexdigest()


def pack_checksum(pack_id: str, pack_label: str, document_count: int) -> str:
    """Short digest of a pack's identity and size."""
    return stable_hash(f"{pack_id}-{pack_label}-{document_count}")[:CHECKSUM_LENGTH]


def _now_ms() -> int:
    return int(time.time() * 1000)


def coerce_timestamp_ms(value: Any) -> int:
    """
    Convert a host timestamp to epoch milliseconds.

    Accepts numbers (treated as millis), ISO-8601 strings and datetimes.
    Anything missing or unparseable becomes "now", so an unknown timestamp
    never looks older than it is.
    """
    if value is None or isinstance(value, bool):
        return _now_ms()
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return _now_ms()
        try:
            return int(float(text))
        except ValueError:
            pass
        try:
            return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return _now_ms()
    return _now_ms()


def generate_fingerprint(pack: Any) -> PackFingerprint:
    """
    Fingerprint a pack from what its handle already exposes.

    Args:
        pack: PackHandle (id, label, document_count, last_modified)

    Returns:
        PackFingerprint for the pack's current state
    """
    count = int(getattr(pack, "document_count", 0) or 0)
    return PackFingerprint(
        pack_id=pack.id,
        pack_label=pack.label,
        last_modified=coerce_timestamp_ms(getattr(pack, "last_modified", None)),
        document_count=count,
        checksum=pack_checksum(pack.id, pack.label, count),
    )


def fingerprints_match(current: PackFingerprint, saved: PackFingerprint) -> bool:
    """Two fingerprints match when size and checksum agree."""
    return (
        current.document_count == saved.document_count
        and current.checksum == saved.checksum
    )
