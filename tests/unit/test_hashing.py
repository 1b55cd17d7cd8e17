"""
Unit tests for compendium_index/persist/hashing.py

Tests stable hashing, timestamp coercion and pack fingerprints.
"""
import time
from datetime import datetime, timezone

from compendium_index.persist.hashing import (
    coerce_timestamp_ms,
    fingerprints_match,
    generate_fingerprint,
    pack_checksum,
    stable_hash,
)

from fakes import FakePack, dnd_doc


def test_stable_hash_dict_order_independent():
    """Dict key order should not affect the hash."""
    assert stable_hash({"b": 2, "a": 1}) == stable_hash({"a": 1, "b": 2})


def test_stable_hash_unicode_normalized():
    """NFC and NFD forms of the same text hash identically."""
    nfc = "caf\u00e9"
    nfd = "cafe\u0301"
    assert stable_hash(nfc) == stable_hash(nfd)


def test_pack_checksum_is_short_and_deterministic():
    """Checksum is 16 hex chars and depends on id, label and count."""
    a = pack_checksum("dnd5e.monsters", "Monsters", 10)
    assert len(a) == 16
    assert a == pack_checksum("dnd5e.monsters", "Monsters", 10)
    assert a != pack_checksum("dnd5e.monsters", "Monsters", 11)
    assert a != pack_checksum("dnd5e.monsters", "Beasts", 10)


def test_coerce_timestamp_accepts_numbers_strings_datetimes():
    """Millis pass through; ISO strings and datetimes are converted."""
    assert coerce_timestamp_ms(1_700_000_000_000) == 1_700_000_000_000
    assert coerce_timestamp_ms("1700000000000") == 1_700_000_000_000

    dt = datetime(2024, 1, 1, tzinfo=timezone.utc)
    expected = int(dt.timestamp() * 1000)
    assert coerce_timestamp_ms(dt) == expected
    assert coerce_timestamp_ms("2024-01-01T00:00:00Z") == expected


def test_coerce_timestamp_missing_is_now():
    """Unknown timestamps become the current time."""
    before = int(time.time() * 1000)
    for value in (None, "", "not a date", object()):
        ts = coerce_timestamp_ms(value)
        assert ts >= before


def test_generate_fingerprint_uses_reported_count():
    """Fingerprint reflects the pack's index size, not its raw document list."""
    pack = FakePack("p", documents=[dnd_doc("a", "A"), dnd_doc("b", "B")])

    unloaded = generate_fingerprint(pack)
    assert unloaded.document_count == 0

    pack._indexed = True
    fp = generate_fingerprint(pack)
    assert fp.pack_id == "p"
    assert fp.pack_label == "P"
    assert fp.document_count == 2
    assert fp.last_modified == 1_700_000_000_000
    assert fp.checksum == pack_checksum("p", "P", 2)


def test_fingerprints_match_ignores_timestamp():
    """Only count and checksum decide a match."""
    pack = FakePack("p", documents=[dnd_doc("a", "A")])
    pack._indexed = True
    saved = generate_fingerprint(pack)

    pack.last_modified = 1_800_000_000_000
    assert fingerprints_match(generate_fingerprint(pack), saved)

    pack.documents.append(dnd_doc("b", "B"))
    assert not fingerprints_match(generate_fingerprint(pack), saved)
