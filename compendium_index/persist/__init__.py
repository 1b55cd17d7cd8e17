"""
Persistence layer for the enhanced creature index.

Provides:
- Stable hashing and pack fingerprints for staleness detection
- World-scoped store keys
- Flat stores (directory with atomic rename, SQLite)
- Index serialization/deserialization
"""

from .hashing import stable_hash, pack_checksum, generate_fingerprint, fingerprints_match
from .paths import IndexPaths, ensure_dirs
from .file_store import FileStore
from .sqlite_store import KVStore
from .index_store import IndexStore, encode_index, decode_index, open_index_store

__all__ = [
    "stable_hash",
    "pack_checksum",
    "generate_fingerprint",
    "fingerprints_match",
    "IndexPaths",
    "ensure_dirs",
    "FileStore",
    "KVStore",
    "IndexStore",
    "encode_index",
    "decode_index",
    "open_index_store",
]
