"""
Data-access facade over the enhanced creature index.

Wires the cache, query engine and invalidation listener for one world and
exposes the operations callers use: rebuild, criteria listing, compendium
search, pack listing and status.
"""

from typing import Any, Optional

from compendium_index.config.settings import Settings
from compendium_index.errors import ValidationError
from compendium_index.host.interfaces import HookBus, PackSource
from compendium_index.index.cache import IndexCache
from compendium_index.index.invalidation import InvalidationListener
from compendium_index.ops.jobs import RebuildJob, RebuildJobs
from compendium_index.ops.telemetry import get_logger
from compendium_index.persist.index_store import IndexStore, open_index_store
from compendium_index.retrieval.engine import QueryEngine
from compendium_index.retrieval.fallback import FallbackSearch
from compendium_index.retrieval.schemas import QueryCriteria, QueryResult, SearchResult

from .schemas import IndexStatusResponse, PackInfo, RebuildResponse


logger = get_logger(__name__)


class CompendiumDataAccess:
    """
    Entry point for callers of the index.

    Example:
        >>> access = CompendiumDataAccess(DirectoryPackSource("packs"), Settings())
        >>> result = await access.list_creatures_by_criteria({"creature_type": "dragon"})
    """

    def __init__(
        self,
        source: PackSource,
        settings: Optional[Settings] = None,
        hooks: Optional[HookBus] = None,
        store: Optional[IndexStore] = None,
    ):
        """
        Args:
            source: Host pack enumeration
            settings: Application settings (defaults apply when omitted)
            hooks: Event bus; when given the invalidation listener is registered
            store: Index store; built from ``settings.store`` when omitted
        """
        self.settings = settings or Settings()
        self.source = source
        self.store = store or open_index_store(self.settings.store)
        self.cache = IndexCache(source, self.store, self.settings.index)
        self.fallback = FallbackSearch(source, self.settings.search, self.settings.index)
        self.engine = QueryEngine(self.cache, self.fallback, self.settings.index)
        self.jobs = RebuildJobs(self.cache, self.settings.store.job_history)
        self.listener: Optional[InvalidationListener] = None
        if hooks is not None:
            self.listener = InvalidationListener(self.cache, hooks, self.settings.index)
            self.listener.register()

    async def rebuild_enhanced_index(self) -> RebuildResponse:
        """Force a full rebuild. Never raises; failures are in the response."""
        try:
            report = await self.cache.rebuild(force=True)
        except Exception as e:
            logger.error("index_rebuild_failed", error=str(e), error_type=type(e).__name__)
            return RebuildResponse(
                success=False,
                total_creatures=0,
                message=f"Failed to rebuild creature index: {e}",
                persisted=False,
            )
        return RebuildResponse(
            success=True,
            total_creatures=len(report.profiles),
            message=report.message,
            persisted=report.persisted,
            error_count=report.error_count,
        )

    def start_background_rebuild(self, force: bool = True) -> str:
        """
        Start a rebuild in the background of the running event loop.

        Returns:
            Job id; a rebuild already running is reused
        """
        return self.jobs.start(force=force).id

    def rebuild_job(self, job_id: str) -> Optional[RebuildJob]:
        return self.jobs.get(job_id)

    async def list_creatures_by_criteria(self, criteria: Any = None) -> QueryResult:
        """Criteria query; see :meth:`QueryEngine.query`."""
        return await self.engine.query(criteria)

    def _index_filters(self, filters: Any) -> Optional[QueryCriteria]:
        """Criteria to answer a filtered search from the index, or None."""
        if filters is None:
            return None
        crit = QueryCriteria.parse(filters)
        if not (crit.power_metric is not None or crit.creature_type or crit.has_legendary_actions):
            return None
        return QueryCriteria(
            power_metric=crit.power_metric,
            creature_type=crit.creature_type,
            size=crit.size,
            has_legendary_actions=crit.has_legendary_actions,
            limit=self.settings.search.filtered_search_limit,
        )

    async def search_compendium(
        self,
        query: str,
        pack_type: Optional[str] = None,
        filters: Any = None,
    ) -> list[SearchResult]:
        """
        Search packs by name, optionally narrowed by creature filters.

        Filtered searches of the tracked pack type are answered from the
        enhanced index when it is enabled; the index is trusted, so the name
        query is not applied to those results.

        Raises:
            ValidationError: If the query or filters are malformed
        """
        self.fallback.validate_query(query)

        if pack_type == self.settings.index.tracked_pack_type and self.settings.index.enhanced_index_enabled:
            criteria = self._index_filters(filters)
            if criteria is not None:
                try:
                    result = await self.engine.query_indexed(criteria)
                    return [SearchResult.from_profile(p) for p in result.profiles]
                except ValidationError:
                    raise
                except Exception as e:
                    logger.warning("enhanced_search_failed", error=str(e), error_type=type(e).__name__)

        return await self.engine.search(query, pack_type=pack_type, filters=filters)

    def available_packs(self) -> list[PackInfo]:
        return [
            PackInfo(
                id=pack.id,
                label=pack.label,
                type=pack.document_type,
                document_count=pack.document_count,
            )
            for pack in self.source.list_packs()
        ]

    def index_status(self) -> IndexStatusResponse:
        index = self.cache.current
        report = self.cache.last_report
        job = self.jobs.latest()
        last_build = None
        if report is not None:
            last_build = {
                "total_creatures": len(report.profiles),
                "pack_count": report.pack_count,
                "error_count": report.error_count,
                "persisted": report.persisted,
                "duration_s": round(report.duration_s, 3),
                "message": report.message,
            }
        return IndexStatusResponse(
            state=self.cache.state.value,
            enabled=self.settings.index.enhanced_index_enabled,
            dialect=self.settings.index.dialect,
            store_key=self.store.key,
            metadata=index.metadata.model_dump(mode="json") if index is not None else None,
            last_build=last_build,
            job=job.to_dict() if job is not None else None,
        )

    def close(self) -> None:
        """Detach the invalidation listener."""
        if self.listener is not None:
            self.listener.unregister()
