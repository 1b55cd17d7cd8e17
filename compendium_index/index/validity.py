"""
Validity checks for a loaded persisted index.

An index may be served only if nothing about the tracked packs has
detectably changed since it was built. Any mismatch invalidates the
whole index; there is no partial reuse.
"""

from typing import Any, Iterable, Optional

from compendium_index.persist.hashing import fingerprints_match, generate_fingerprint

from .schemas import PersistedIndex


def explain_invalid(
    index: Optional[PersistedIndex],
    live_packs: Iterable[Any],
    expected_version: str,
    expected_dialect: str,
) -> Optional[str]:
    """
    First reason the index cannot be served, or None when it is valid.

    Args:
        index: Loaded index (None when absent)
        live_packs: Packs of the tracked type that currently exist
        expected_version: Schema version the caller can read
        expected_dialect: Dialect the host currently runs
    """
    if index is None:
        return "absent"

    meta = index.metadata
    if meta.schema_version != expected_version:
        return f"schema version {meta.schema_version} != {expected_version}"

    dialect = getattr(meta.dialect, "value", meta.dialect)
    if dialect != expected_dialect:
        return f"dialect changed from {dialect} to {expected_dialect}"

    live_ids = set()
    for pack in live_packs:
        live_ids.add(pack.id)
        saved = meta.fingerprints.get(pack.id)
        if saved is None:
            return f"new pack {pack.id}"
        if not fingerprints_match(generate_fingerprint(pack), saved):
            return f"pack {pack.id} changed"

    for pack_id in meta.fingerprints:
        if pack_id not in live_ids:
            return f"pack {pack_id} no longer exists"

    return None


def is_index_valid(
    index: Optional[PersistedIndex],
    live_packs: Iterable[Any],
    expected_version: str,
    expected_dialect: str,
) -> bool:
    """True when :func:`explain_invalid` finds nothing wrong."""
    return explain_invalid(index, live_packs, expected_version, expected_dialect) is None
