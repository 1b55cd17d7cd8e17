"""
Contracts for the host platform collaborators.

The index never owns packs, documents or events; it only relies on the
shapes described here.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable


Document = dict
IndexEntry = dict
HookHandler = Callable[..., Union[Awaitable[None], None]]


@runtime_checkable
class PackHandle(Protocol):
    """A host-owned collection of documents of one type."""

    @property
    def id(self) -> str: ...

    @property
    def label(self) -> str: ...

    @property
    def document_type(self) -> str: ...

    @property
    def last_modified(self) -> Any:
        """Epoch millis, ISO string, datetime, or None when unknown."""
        ...

    @property
    def document_count(self) -> int:
        """Size of the lightweight index (0 before it is loaded)."""
        ...

    @property
    def indexed(self) -> bool: ...

    async def ensure_index(self) -> None:
        """Load the lightweight index if it is not loaded yet."""
        ...

    def index_entries(self) -> list[IndexEntry]:
        """Lightweight records: ``_id``, ``name``, ``type`` and maybe ``img``."""
        ...

    async def get_documents(self) -> list[Document]:
        """Full documents for every entry in the pack."""
        ...


@runtime_checkable
class PackSource(Protocol):
    """Enumerates the packs the host currently exposes."""

    def list_packs(self, document_type: Optional[str] = None) -> list[PackHandle]: ...

    def get_pack(self, pack_id: str) -> Optional[PackHandle]: ...


@runtime_checkable
class HookBus(Protocol):
    """Subscription point for host lifecycle events."""

    def on(self, event: str, handler: HookHandler) -> None: ...

    def off(self, event: str, handler: HookHandler) -> None: ...


@runtime_checkable
class FlatStore(Protocol):
    """Key/bytes store the persisted index is written to."""

    def exists(self, key: str) -> bool: ...

    def read(self, key: str) -> bytes: ...

    def write(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> bool: ...
