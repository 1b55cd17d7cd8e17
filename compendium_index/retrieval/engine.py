"""
Query engine: answer criteria queries from the enhanced index, falling back
to a keyword scan when the index cannot be used.

Strategies are tried in order; the first one that returns wins. Any error
from the indexed tier sends the query to the fallback tier.
"""

from typing import Any, Optional

from compendium_index.config.settings import IndexCfg
from compendium_index.index.cache import IndexCache
from compendium_index.ops.telemetry import get_logger

from .fallback import FallbackSearch
from .filters import select
from .schemas import QueryCriteria, QueryResult, QuerySummary, SearchResult


logger = get_logger(__name__)

TOP_PACKS = 5


def _pack_overview(items: list) -> tuple[list[str], dict[str, str]]:
    """Distinct pack ids in first-seen order, and their labels."""
    order: list[str] = []
    labels: dict[str, str] = {}
    for item in items:
        if item.pack not in labels:
            order.append(item.pack)
            labels[item.pack] = item.pack_label or "Unknown Pack"
    return order, labels


def _by_pack(items: list) -> dict[str, int]:
    counts: dict[str, int] = {}
    for item in items:
        counts[item.pack_label] = counts.get(item.pack_label, 0) + 1
    return counts


def summarize(
    hits: list,
    universe: list,
    criteria: QueryCriteria,
    method: str,
    used_fallback: bool,
) -> QuerySummary:
    """
    Args:
        hits: Items returned to the caller
        universe: Everything that was searched (index profiles or hits)
    """
    order, labels = _pack_overview(universe)
    return QuerySummary(
        packs_searched=len(order),
        top_packs=[{"id": pid, "label": labels[pid]} for pid in order[:TOP_PACKS]],
        results_by_pack=_by_pack(hits),
        total_found=len(hits),
        total_indexed=len(universe) if not used_fallback else 0,
        search_method=method,
        used_fallback=used_fallback,
        criteria=criteria.echo(),
    )


class IndexedStrategy:
    """Filter the cached index."""

    name = "enhanced_persistent_index"

    def __init__(self, cache: IndexCache):
        self.cache = cache

    async def run(self, criteria: QueryCriteria, limit: int) -> QueryResult:
        index = await self.cache.get_index()
        hits = select(index.profiles, criteria, limit)
        return QueryResult(
            profiles=hits,
            summary=summarize(hits, index.profiles, criteria, self.name, used_fallback=False),
        )


class FallbackStrategy:
    """Keyword scan of lightweight pack entries."""

    name = "basic_fallback"

    def __init__(self, search: FallbackSearch):
        self.search = search

    async def run(self, criteria: QueryCriteria, limit: int) -> QueryResult:
        hits = await self.search.search_by_criteria(criteria, limit)
        return QueryResult(
            profiles=hits,
            summary=summarize(hits, hits, criteria, self.name, used_fallback=True),
        )


class QueryEngine:
    """
    Criteria queries and free-text search over the compendium.

    Example:
        >>> engine = QueryEngine(cache, FallbackSearch(source), settings.index)
        >>> result = await engine.query({"challenge_rating": {"min": 2, "max": 5}})
        >>> [p.name for p in result.profiles]
    """

    def __init__(self, cache: IndexCache, fallback: FallbackSearch, cfg: Optional[IndexCfg] = None):
        self.cache = cache
        self.fallback = fallback
        self.cfg = cfg or cache.cfg
        self.indexed = IndexedStrategy(cache)
        self.basic = FallbackStrategy(fallback)

    def _limit(self, criteria: QueryCriteria) -> int:
        return criteria.limit or self.cfg.default_limit

    async def query(self, criteria: Any = None) -> QueryResult:
        """
        Profiles matching every criterion, ordered by (power, name).

        Never raises for well-formed criteria; index failures are logged and
        answered by the fallback tier (``summary.used_fallback``).

        Raises:
            ValidationError: If the criteria cannot be parsed
        """
        crit = QueryCriteria.parse(criteria)
        limit = self._limit(crit)

        if self.cfg.enhanced_index_enabled:
            try:
                result = await self.indexed.run(crit, limit)
                logger.info(
                    "query_answered",
                    method=self.indexed.name,
                    found=result.summary.total_found,
                    indexed=result.summary.total_indexed,
                )
                return result
            except Exception as e:
                logger.warning(
                    "indexed_query_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

        result = await self.basic.run(crit, limit)
        logger.info("query_answered", method=self.basic.name, found=result.summary.total_found)
        return result

    async def query_indexed(self, criteria: Any = None) -> QueryResult:
        """Indexed tier only; errors propagate."""
        crit = QueryCriteria.parse(criteria)
        return await self.indexed.run(crit, self._limit(crit))

    async def search(
        self,
        text: str,
        pack_type: Optional[str] = None,
        filters: Any = None,
    ) -> list[SearchResult]:
        """Free-text compendium search; see :meth:`FallbackSearch.search`."""
        return await self.fallback.search(text, pack_type=pack_type, filters=filters)
