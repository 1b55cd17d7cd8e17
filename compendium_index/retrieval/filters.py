"""
Criteria predicates and ordering for index profiles.

Filtering is a strict conjunction. A criterion a dialect has no field for
is compared against that dialect's default (pf2e profiles never have
legendary actions, dnd5e profiles are "common" with no traits).
"""

from typing import Any, Iterable, Optional, Sequence

from .schemas import PowerRange, QueryCriteria


def _same_text(actual: Any, wanted: Optional[str]) -> bool:
    if wanted is None:
        return True
    return str(actual or "").strip().lower() == wanted.strip().lower()


def power_matches(value: float, wanted: Any) -> bool:
    """Exact match for a number, inclusive containment for a PowerRange."""
    if wanted is None:
        return True
    if isinstance(wanted, PowerRange):
        return wanted.contains(value)
    return value == float(wanted)


def has_all_traits(traits: Iterable[str], wanted: Optional[Sequence[str]]) -> bool:
    if not wanted:
        return True
    have = {str(t).lower() for t in traits}
    return all(str(t).lower() in have for t in wanted)


def matches(profile: Any, criteria: QueryCriteria) -> bool:
    """True when ``profile`` satisfies every set criterion."""
    if not power_matches(profile.power_metric, criteria.power_metric):
        return False
    if not _same_text(profile.creature_type, criteria.creature_type):
        return False
    if not _same_text(profile.size, criteria.size):
        return False
    if not _same_text(profile.rarity, criteria.rarity):
        return False
    if not _same_text(profile.alignment, criteria.alignment):
        return False
    if criteria.has_spells is not None and profile.has_spells != criteria.has_spells:
        return False
    if (
        criteria.has_legendary_actions is not None
        and profile.has_legendary_actions != criteria.has_legendary_actions
    ):
        return False
    return has_all_traits(profile.traits, criteria.traits)


def sort_profiles(profiles: Iterable[Any]) -> list:
    """Order by (power_metric asc, name asc); stable for ties."""
    return sorted(profiles, key=lambda p: (p.power_metric, p.name))


def select(profiles: Iterable[Any], criteria: QueryCriteria, limit: int) -> list:
    """Filter, sort and truncate."""
    hits = [p for p in profiles if matches(p, criteria)]
    return sort_profiles(hits)[:limit]
