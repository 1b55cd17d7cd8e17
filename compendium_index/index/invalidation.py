"""
Invalidation listener.

Subscribes to host lifecycle events and drops the cached index when a tracked
document or pack changes. The index is rebuilt lazily on the next read.
"""

from typing import Any, Optional

from compendium_index.config.settings import IndexCfg
from compendium_index.host.hooks import (
    CREATE_COMPENDIUM,
    CREATE_DOCUMENT,
    DELETE_COMPENDIUM,
    DELETE_DOCUMENT,
    UPDATE_DOCUMENT,
)
from compendium_index.host.interfaces import HookBus
from compendium_index.ops.telemetry import get_logger

from .cache import IndexCache


logger = get_logger(__name__)

DOCUMENT_EVENTS = (CREATE_DOCUMENT, UPDATE_DOCUMENT, DELETE_DOCUMENT)
PACK_EVENTS = (CREATE_COMPENDIUM, DELETE_COMPENDIUM)


def _field(obj: Any, *names: str) -> Any:
    """First present attribute or key among ``names``."""
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


class InvalidationListener:
    """Invalidates the index cache on relevant host events."""

    def __init__(self, cache: IndexCache, hooks: HookBus, cfg: Optional[IndexCfg] = None):
        self.cache = cache
        self.hooks = hooks
        self.cfg = cfg or cache.cfg
        self._registered = False
        self.invalidations = 0

    @property
    def registered(self) -> bool:
        return self._registered

    def register(self) -> None:
        """Subscribe to every tracked event. Calling it twice is a no-op."""
        if self._registered:
            return
        for event in DOCUMENT_EVENTS:
            self.hooks.on(event, self._on_document)
        for event in PACK_EVENTS:
            self.hooks.on(event, self._on_pack)
        self._registered = True
        logger.debug("invalidation_listener_registered")

    def unregister(self) -> None:
        if not self._registered:
            return
        for event in DOCUMENT_EVENTS:
            self.hooks.off(event, self._on_document)
        for event in PACK_EVENTS:
            self.hooks.off(event, self._on_pack)
        self._registered = False

    def is_tracked_document(self, document: Any) -> bool:
        """Document lives in a pack and has a tracked kind."""
        return bool(_field(document, "pack")) and _field(document, "type") in self.cfg.tracked_kinds

    def is_tracked_pack(self, pack: Any) -> bool:
        return _field(pack, "document_type", "type") == self.cfg.tracked_pack_type

    async def _on_document(self, document: Any, *args: Any) -> None:
        if self.is_tracked_document(document):
            await self._invalidate("document", _field(document, "pack"))

    async def _on_pack(self, pack: Any, *args: Any) -> None:
        if self.is_tracked_pack(pack):
            await self._invalidate("pack", _field(pack, "id"))

    async def _invalidate(self, source: str, pack_id: Any) -> None:
        # read at event time so the flag can be toggled while registered
        if not self.cfg.auto_rebuild:
            return
        logger.info("index_invalidation_triggered", source=source, pack=pack_id)
        await self.cache.invalidate()
        self.invalidations += 1
