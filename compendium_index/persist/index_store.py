"""
Index persistence - serialize the derived index to a flat store.

The fingerprint map is written as an ordered list of ``[pack_id, fingerprint]``
pairs and rebuilt on load. Any failure to load is reported as "no index",
which makes the next read rebuild.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from compendium_index.config.settings import StoreCfg
from compendium_index.errors import PersistenceReadError, PersistenceWriteError
from compendium_index.host.interfaces import FlatStore
from compendium_index.index.schemas import PersistedIndex
from compendium_index.ops.telemetry import get_logger

from .file_store import FileStore
from .paths import IndexPaths
from .sqlite_store import KVStore


logger = get_logger(__name__)


def encode_index(index: PersistedIndex) -> bytes:
    """Serialize an index to UTF-8 JSON bytes."""
    data = index.model_dump(mode="json")
    fingerprints = data["metadata"].pop("fingerprints", {})
    data["metadata"]["fingerprints"] = [[pack_id, fp] for pack_id, fp in fingerprints.items()]
    return json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")


def decode_index(raw: bytes | str) -> PersistedIndex:
    """
    Deserialize bytes produced by :func:`encode_index`.

    Raises:
        ValueError: If the payload is not a valid index
    """
    data: Any = json.loads(raw)
    if not isinstance(data, dict) or not isinstance(data.get("metadata"), dict):
        raise ValueError("Persisted index is missing its metadata")

    pairs = data["metadata"].get("fingerprints") or []
    if isinstance(pairs, list):
        data["metadata"]["fingerprints"] = {pack_id: fp for pack_id, fp in pairs}

    return PersistedIndex.model_validate(data)


class IndexStore:
    """Loads, saves and deletes one world's persisted index."""

    def __init__(self, store: FlatStore, paths: IndexPaths):
        self.store = store
        self.paths = paths

    @property
    def key(self) -> str:
        return self.paths.index_key

    async def load(self) -> Optional[PersistedIndex]:
        """
        Load the persisted index.

        Returns:
            PersistedIndex, or None when absent or unreadable
        """
        try:
            if not await asyncio.to_thread(self.store.exists, self.key):
                return None
            raw = await asyncio.to_thread(self.store.read, self.key)
        except (PersistenceReadError, OSError) as e:
            logger.warning("index_load_failed", key=self.key, error=str(e))
            return None

        try:
            return decode_index(raw)
        except (ValueError, TypeError, PydanticValidationError) as e:
            logger.warning("index_decode_failed", key=self.key, error=str(e))
            return None

    async def save(self, index: PersistedIndex) -> None:
        """
        Replace the persisted index.

        Raises:
            PersistenceWriteError: If the store rejects the write
        """
        data = encode_index(index)
        try:
            await asyncio.to_thread(self.store.write, self.key, data)
        except PersistenceWriteError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to save index to {self.key}: {e}") from e
        logger.info(
            "index_saved",
            key=self.key,
            profiles=index.metadata.total_profiles,
            bytes=len(data),
        )

    async def delete(self) -> bool:
        """
        Delete the persisted index.

        Returns:
            True if an artifact was removed
        """
        return await asyncio.to_thread(self.store.delete, self.key)


def open_index_store(cfg: StoreCfg) -> IndexStore:
    """Build an IndexStore for the configured backend."""
    root = Path(cfg.root)
    if cfg.backend == "sqlite":
        store: FlatStore = KVStore(root / "index.db")
    else:
        store = FileStore(root)
    return IndexStore(store, IndexPaths.from_cfg(cfg))
