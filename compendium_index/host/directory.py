"""
Directory-backed pack source.

Each ``*.json`` file in the directory is one pack:

    {
        "id": "world.monsters",
        "label": "Monsters",
        "type": "Actor",
        "lastModified": 1700000000000,      # optional, file mtime otherwise
        "documents": [{"_id": "...", "name": "...", "type": "npc", "system": {...}}]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from compendium_index.host.interfaces import Document, IndexEntry
from compendium_index.ops.telemetry import get_logger


logger = get_logger(__name__)


INDEX_FIELDS = ("_id", "name", "type", "img", "description")


class JsonPack:
    """A pack loaded lazily from one JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        header = self._read()
        self._id = str(header.get("id") or self.path.stem)
        self._label = str(header.get("label") or self._id)
        self._type = str(header.get("type") or "Actor")
        self._last_modified = header.get("lastModified")
        if self._last_modified is None:
            self._last_modified = int(self.path.stat().st_mtime * 1000)
        self._index: Optional[list[IndexEntry]] = None

    def _read(self) -> dict:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Pack file {self.path} must contain a JSON object")
        return data

    @property
    def id(self) -> str:
        return self._id

    @property
    def label(self) -> str:
        return self._label

    @property
    def document_type(self) -> str:
        return self._type

    @property
    def last_modified(self) -> Any:
        return self._last_modified

    @property
    def document_count(self) -> int:
        return len(self._index) if self._index is not None else 0

    @property
    def indexed(self) -> bool:
        return self._index is not None

    async def ensure_index(self) -> None:
        if self._index is None:
            docs = self._read().get("documents") or []
            self._index = [
                {k: doc[k] for k in INDEX_FIELDS if k in doc}
                for doc in docs
                if isinstance(doc, dict)
            ]

    def index_entries(self) -> list[IndexEntry]:
        return list(self._index or [])

    async def get_documents(self) -> list[Document]:
        docs = self._read().get("documents") or []
        return [doc for doc in docs if isinstance(doc, dict)]


class DirectoryPackSource:
    """Exposes every ``*.json`` file under ``root`` as a pack."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self._packs: dict[str, JsonPack] = {}
        self.refresh()

    def refresh(self) -> None:
        """Rescan the directory (new files appear, removed files disappear)."""
        packs: dict[str, JsonPack] = {}
        if self.root.exists():
            for path in sorted(self.root.glob("*.json")):
                try:
                    pack = JsonPack(path)
                except (OSError, ValueError) as e:
                    logger.warning("pack_file_skipped", path=str(path), error=str(e))
                    continue
                packs[pack.id] = pack
        self._packs = packs

    def list_packs(self, document_type: Optional[str] = None) -> list[JsonPack]:
        packs = list(self._packs.values())
        if document_type is not None:
            packs = [p for p in packs if p.document_type == document_type]
        return packs

    def get_pack(self, pack_id: str) -> Optional[JsonPack]:
        return self._packs.get(pack_id)
