"""
Fallback search over the packs' lightweight index entries.

Used when the enhanced index is disabled or failing, and for free-text
compendium search. Filters are only approximated: power and creature type
are mapped to name keywords because full documents are never loaded here.
"""

from typing import Any, Optional, Sequence

from compendium_index.config.settings import IndexCfg, SearchCfg
from compendium_index.errors import UnsupportedDialectError, ValidationError
from compendium_index.host.interfaces import PackHandle, PackSource
from compendium_index.index.dialects import DialectExtractor, get_extractor
from compendium_index.ops.telemetry import get_logger, timed

from .schemas import QueryCriteria, SearchResult


logger = get_logger(__name__)

EXCLUDED_PACK_TYPES = ("Scene",)

# (threshold, keywords); first threshold the power reaches wins
POWER_TERMS = (
    (15, ("ancient", "legendary", "elder", "greater")),
    (10, ("adult", "warlord", "champion", "master")),
    (5, ("captain", "knight", "priest", "mage")),
)
LOW_POWER_TERMS = ("guard", "soldier", "warrior", "scout")
HUMANOID_TERMS = ("human", "elf", "dwarf", "orc", "goblin")
COMMON_NAMES = (
    "knight", "warrior", "guard", "soldier", "mage",
    "priest", "bandit", "orc", "goblin", "dragon",
)


def power_terms(threshold: Optional[float]) -> list[str]:
    """Name keywords suggesting a creature of roughly this power."""
    if threshold is None:
        return []
    for floor, terms in POWER_TERMS:
        if threshold >= floor:
            return list(terms)
    return list(LOW_POWER_TERMS)


def injected_terms(criteria: QueryCriteria) -> list[str]:
    """Keywords standing in for power and creature type criteria."""
    terms = power_terms(criteria.power_threshold())
    if criteria.creature_type:
        kind = criteria.creature_type.lower()
        terms.append(kind)
        if kind == "humanoid":
            terms.extend(HUMANOID_TERMS)
    return terms


def text_matches_any(entry: dict, terms: Sequence[str]) -> bool:
    """At least one term occurs in the entry's name or description."""
    description = entry.get("description")
    text = f"{entry.get('name', '')} {description if isinstance(description, str) else ''}".lower()
    return any(term.lower() in text for term in terms)


def relevance_score(
    entry: dict,
    criteria: QueryCriteria,
    query: str,
    extractor: Optional[DialectExtractor] = None,
) -> float:
    """
    Heuristic ranking score for a fallback hit.

    Type and power bonuses need ``system`` data on the entry, which
    lightweight index entries usually lack.
    """
    score = 0.0
    name = str(entry.get("name", "")).lower()
    system = entry.get("system")

    if isinstance(system, dict) and system and extractor is not None:
        if criteria.creature_type and extractor.creature_type_of(system) == criteria.creature_type.lower():
            score += 20
        power = extractor.power_of(system)
        if criteria.power_exact is not None:
            if power == criteria.power_exact:
                score += 15
        elif criteria.power_range is not None:
            rng = criteria.power_range
            if rng.midpoint is not None and rng.contains(power):
                score += 10
                score += max(0.0, 5 - abs(power - rng.midpoint))

    if any(common in name for common in COMMON_NAMES):
        score += 5

    for term in query.lower().split():
        if len(term) > 2 and term in name:
            score += 3

    return score


def _named(entry: Any) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("name"), str)
        and bool(entry["name"].strip())
    )


class FallbackSearch:
    """Keyword search over index entries with heuristic ranking."""

    def __init__(
        self,
        source: PackSource,
        search_cfg: Optional[SearchCfg] = None,
        index_cfg: Optional[IndexCfg] = None,
    ):
        self.source = source
        self.search_cfg = search_cfg or SearchCfg()
        self.index_cfg = index_cfg or IndexCfg()

    def validate_query(self, text: Any) -> list[str]:
        """
        Check a free-text query and split it into terms.

        The trimmed query needs ``min_query_chars`` characters. The default of
        3 rejects two-letter queries such as "kn"; set it to 2 to accept
        two-letter names.

        Returns:
            Lowercase search terms

        Raises:
            ValidationError: If the query is too short or has no terms
        """
        min_chars = self.search_cfg.min_query_chars
        if not isinstance(text, str) or len(text.strip()) < min_chars:
            raise ValidationError(f"Search query must be a string with at least {min_chars} characters")
        terms = [t for t in text.lower().split() if t]
        if not terms:
            raise ValidationError("Search query must contain valid search terms")
        return terms

    def _extractor(self) -> Optional[DialectExtractor]:
        try:
            return get_extractor(self.index_cfg.dialect)
        except UnsupportedDialectError:
            return None

    def _packs(self, pack_type: Optional[str]) -> list[PackHandle]:
        packs = self.source.list_packs(pack_type)
        return [p for p in packs if p.document_type not in EXCLUDED_PACK_TYPES]

    def _is_creature(self, entry: dict, pack: PackHandle) -> bool:
        return (
            pack.document_type == self.index_cfg.tracked_pack_type
            and entry.get("type") in self.index_cfg.tracked_kinds
        )

    async def _scan(
        self,
        packs: Sequence[PackHandle],
        required: Sequence[str],
        criteria: Optional[QueryCriteria],
        creatures_only: bool = False,
    ) -> list[tuple[dict, PackHandle]]:
        """
        Collect (entry, pack) hits, capped per pack and globally.

        ``required`` terms must all occur in the name. When ``criteria`` is
        given, creature entries must also match one injected keyword.
        """
        per_pack = self.search_cfg.per_pack_cap
        global_cap = self.search_cfg.global_cap
        inject = injected_terms(criteria) if criteria is not None and not criteria.is_empty() else []

        hits: list[tuple[dict, PackHandle]] = []
        for pack in packs:
            try:
                if not pack.indexed:
                    await pack.ensure_index()
                entries = pack.index_entries()
            except Exception as e:
                logger.warning("fallback_pack_failed", pack=pack.id, error=str(e))
                continue

            in_pack = 0
            for entry in entries:
                if not _named(entry):
                    continue
                name = entry["name"].lower()
                if not all(term in name for term in required):
                    continue
                creature = self._is_creature(entry, pack)
                if creatures_only and not creature:
                    continue
                if inject and creature and not text_matches_any(entry, inject):
                    continue

                hits.append((entry, pack))
                in_pack += 1
                if in_pack >= per_pack or len(hits) >= global_cap:
                    break

            if len(hits) >= global_cap:
                break

        return hits

    def _rank(
        self,
        hits: Sequence[tuple[dict, PackHandle]],
        query: str,
        criteria: Optional[QueryCriteria],
    ) -> list[SearchResult]:
        extractor = self._extractor()
        results = []
        for entry, pack in hits:
            score = relevance_score(entry, criteria, query, extractor) if criteria is not None else 0.0
            results.append(SearchResult.from_entry(entry, pack, score=score))

        exact = query.strip().lower()
        results.sort(
            key=lambda r: (
                not (exact and r.name.lower() == exact),
                -r.score,
                r.name.casefold(),
                r.name,
            )
        )
        return results

    async def search(
        self,
        text: str,
        pack_type: Optional[str] = None,
        filters: Any = None,
    ) -> list[SearchResult]:
        """
        Free-text search: every term must appear in the entry name.

        Args:
            text: Query text
            pack_type: Only search packs of this document type
            filters: Optional criteria (dict or QueryCriteria) used to narrow
                creature entries by keyword and to rank

        Returns:
            At most ``final_cap`` results, best first

        Raises:
            ValidationError: If the query or filters are malformed
        """
        terms = self.validate_query(text)
        criteria = QueryCriteria.parse(filters) if filters is not None else None

        with timed(logger, "fallback_search_complete", query=text, pack_type=pack_type) as fields:
            hits = await self._scan(self._packs(pack_type), terms, criteria)
            results = self._rank(hits, text, criteria)[: self.search_cfg.final_cap]
            fields["results"] = len(results)
        return results

    async def search_by_criteria(self, criteria: QueryCriteria, limit: int) -> list[SearchResult]:
        """
        Criteria-driven scan over creature entries of the tracked pack type.

        No name terms are required; power and type criteria become keywords.
        """
        with timed(logger, "fallback_criteria_search_complete", criteria=criteria.echo()) as fields:
            packs = self._packs(self.index_cfg.tracked_pack_type)
            hits = await self._scan(packs, (), criteria, creatures_only=True)
            results = self._rank(hits, "", criteria)[:limit]
            fields["results"] = len(results)
        return results
