"""
Query side of the creature index.

Provides:
- Criteria, result and summary models
- Criteria predicates and deterministic ordering
- Keyword fallback search over lightweight pack entries
- The two-tier query engine
"""

from .schemas import PowerRange, QueryCriteria, QueryResult, QuerySummary, SearchResult
from .filters import matches, select, sort_profiles
from .fallback import FallbackSearch, injected_terms, relevance_score
from .engine import FallbackStrategy, IndexedStrategy, QueryEngine

__all__ = [
    "PowerRange",
    "QueryCriteria",
    "QueryResult",
    "QuerySummary",
    "SearchResult",
    "matches",
    "select",
    "sort_profiles",
    "FallbackSearch",
    "injected_terms",
    "relevance_score",
    "FallbackStrategy",
    "IndexedStrategy",
    "QueryEngine",
]
