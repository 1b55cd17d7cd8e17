"""
Read-through cache for the enhanced creature index.

Holds the current PersistedIndex in memory, loads it from the store on first
use, and rebuilds whenever the validity check rejects it.
"""

from enum import Enum
from typing import Optional

from compendium_index.config.settings import IndexCfg
from compendium_index.errors import CompendiumIndexError
from compendium_index.host.interfaces import PackHandle, PackSource
from compendium_index.ops.telemetry import get_logger
from compendium_index.persist.index_store import IndexStore

from .builder import BuildReport, IndexBuilder, ProgressFn
from .schemas import PersistedIndex
from .validity import explain_invalid


logger = get_logger(__name__)


class CacheState(str, Enum):
    ABSENT = "absent"
    VALID = "valid"
    STALE = "stale"
    BUILDING = "building"


class IndexCache:
    """
    Owns the in-memory index, its store and its builder.

    Example:
        >>> cache = IndexCache(source, open_index_store(settings.store), settings.index)
        >>> index = await cache.get_index()
    """

    def __init__(self, source: PackSource, store: IndexStore, cfg: Optional[IndexCfg] = None):
        self.source = source
        self.store = store
        self.cfg = cfg or IndexCfg()
        self.builder = IndexBuilder(source, store, self.cfg)
        self._index: Optional[PersistedIndex] = None
        self._stale = False
        self._last_report: Optional[BuildReport] = None

    @property
    def state(self) -> CacheState:
        if self.builder.in_progress:
            return CacheState.BUILDING
        if self._stale:
            return CacheState.STALE
        if self._index is None:
            return CacheState.ABSENT
        return CacheState.VALID

    @property
    def last_report(self) -> Optional[BuildReport]:
        return self._last_report

    @property
    def current(self) -> Optional[PersistedIndex]:
        """Index held in memory, without any validity check."""
        return self._index

    async def live_packs(self) -> list[PackHandle]:
        """Tracked packs with their lightweight index loaded."""
        packs = list(self.source.list_packs(self.cfg.tracked_pack_type))
        for pack in packs:
            if pack.indexed:
                continue
            try:
                await pack.ensure_index()
            except Exception as e:
                logger.warning("pack_index_load_failed", pack=pack.id, error=str(e))
        return packs

    async def get_index(self) -> PersistedIndex:
        """
        Return a valid index, loading or rebuilding as needed.

        Raises:
            BuildInProgressError: If a rebuild is needed while another build runs
            UnsupportedDialectError: If a rebuild is needed for an unknown dialect
        """
        live = await self.live_packs()

        if self._index is None:
            self._index = await self.store.load()
            if self._index is not None:
                logger.info("index_loaded", profiles=len(self._index.profiles))

        reason = explain_invalid(self._index, live, self.cfg.schema_version, self.cfg.dialect)
        if reason is None:
            return self._index

        logger.info("index_invalid", reason=reason)
        self._stale = self._index is not None or self._stale
        report = await self.rebuild(force=False)
        return report.index

    async def rebuild(self, force: bool = False, progress: Optional[ProgressFn] = None) -> BuildReport:
        """
        Build a fresh index and swap it in.

        The in-memory copy is replaced even when persisting the new index
        fails; the failure is on ``BuildReport.persist_error``.
        """
        report = await self.builder.build(force=force, progress=progress)
        self._index = report.index
        self._stale = False
        self._last_report = report
        return report

    async def rebuild_index(self, force: bool = False) -> list:
        """Rebuild and return the profiles."""
        report = await self.rebuild(force=force)
        return report.profiles

    async def invalidate(self) -> bool:
        """
        Drop the persisted and in-memory index so the next read rebuilds.

        Deleting the artifact is best effort: failures are logged, not raised.

        Returns:
            True if a persisted artifact was removed
        """
        self._stale = self._stale or self._index is not None
        self._index = None
        try:
            removed = await self.store.delete()
        except (CompendiumIndexError, OSError) as e:
            logger.warning("index_delete_failed", key=self.store.key, error=str(e))
            return False
        logger.info("index_invalidated", key=self.store.key, removed=removed)
        if removed:
            self._stale = True
        return removed
