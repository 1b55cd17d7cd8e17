"""
Query models: criteria in, results and summaries out.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from compendium_index.errors import ValidationError
from compendium_index.index.extract import parse_power


class PowerRange(BaseModel):
    """Inclusive power bounds; either side may be open."""

    min: Optional[float] = Field(default=None, allow_inf_nan=False)
    max: Optional[float] = Field(default=None, allow_inf_nan=False)

    def contains(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    @property
    def midpoint(self) -> Optional[float]:
        if self.min is None or self.max is None:
            return None
        return (self.min + self.max) / 2


class QueryCriteria(BaseModel):
    """
    Optional predicates over profiles; unset fields always pass.

    Accepts both snake_case names and the camelCase aliases callers of the
    original data-access API send (``challengeRating``, ``creatureType`` ...).
    ``challenge_rating`` and ``level`` are aliases of ``power_metric``.
    """

    power_metric: Optional[Union[PowerRange, float]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "power_metric", "challenge_rating", "challengeRating", "level", "cr"
        ),
        description="Exact power or {min, max} range",
    )
    creature_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("creature_type", "creatureType")
    )
    size: Optional[str] = None
    rarity: Optional[str] = None
    alignment: Optional[str] = None
    has_spells: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("has_spells", "hasSpells", "spellcaster")
    )
    has_legendary_actions: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("has_legendary_actions", "hasLegendaryActions"),
    )
    traits: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum results")

    @field_validator("power_metric", mode="before")
    @classmethod
    def _parse_fraction(cls, v: Any) -> Any:
        if isinstance(v, str) and "/" in v:
            return parse_power(v)
        return v

    @field_validator("power_metric")
    @classmethod
    def _finite(cls, v: Any) -> Any:
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("power must be a finite number")
        return v

    @classmethod
    def parse(cls, value: Any) -> "QueryCriteria":
        """
        Coerce ``None``, a dict or a QueryCriteria into QueryCriteria.

        Raises:
            ValidationError: If the criteria cannot be parsed
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ValidationError(f"Criteria must be a mapping, got {type(value).__name__}")
        try:
            return cls.model_validate(value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid query criteria: {e}") from e

    @property
    def power_range(self) -> Optional[PowerRange]:
        return self.power_metric if isinstance(self.power_metric, PowerRange) else None

    @property
    def power_exact(self) -> Optional[float]:
        if self.power_metric is None or isinstance(self.power_metric, PowerRange):
            return None
        return float(self.power_metric)

    def power_threshold(self) -> Optional[float]:
        """Exact power, else the range minimum, else None."""
        if self.power_exact is not None:
            return self.power_exact
        if self.power_range is not None:
            return self.power_range.min
        return None

    def is_empty(self) -> bool:
        return not self.echo(include_limit=False)

    def echo(self, include_limit: bool = True) -> Dict[str, Any]:
        """Criteria as a plain dict, unset fields omitted."""
        exclude = None if include_limit else {"limit"}
        return self.model_dump(exclude_none=True, exclude=exclude)


class SearchResult(BaseModel):
    """One hit from a compendium search."""

    id: str = Field(..., description="Document id")
    name: str
    type: str = Field(default="unknown", description="Document kind")
    img: Optional[str] = None
    pack: str = Field(..., description="Pack id")
    pack_label: str
    description: str = ""
    has_image: bool = False
    summary: str = ""

    # Present when the hit came from the enhanced index
    power_metric: Optional[float] = None
    creature_type: Optional[str] = None
    size: Optional[str] = None
    has_legendary_actions: Optional[bool] = None

    score: float = Field(default=0.0, description="Relevance score used for ranking")

    @classmethod
    def from_entry(cls, entry: dict, pack: Any, score: float = 0.0) -> "SearchResult":
        """Build from a pack's lightweight index entry."""
        img = entry.get("img") if isinstance(entry.get("img"), str) else None
        kind = str(entry.get("type") or "unknown")
        description = entry.get("description")
        return cls(
            id=str(entry.get("_id") or ""),
            name=str(entry.get("name")),
            type=kind,
            img=img,
            pack=pack.id,
            pack_label=pack.label,
            description=description if isinstance(description, str) else "",
            has_image=bool(img),
            summary=f"{kind} from {pack.label}",
            score=score,
        )

    @classmethod
    def from_profile(cls, profile: Any) -> "SearchResult":
        """Build from an index profile."""
        return cls(
            id=profile.id or profile.name,
            name=profile.name,
            type=profile.type or "npc",
            img=profile.img or None,
            pack=profile.pack,
            pack_label=profile.pack_label or profile.pack,
            description=profile.description or "",
            has_image=bool(profile.img),
            summary=profile.summary(),
            power_metric=profile.power_metric,
            creature_type=profile.creature_type,
            size=profile.size,
            has_legendary_actions=profile.has_legendary_actions,
        )


class QuerySummary(BaseModel):
    """How a query was answered."""

    packs_searched: int = 0
    top_packs: List[Dict[str, str]] = Field(default_factory=list, description="First 5 packs as {id, label}")
    results_by_pack: Dict[str, int] = Field(default_factory=dict, description="Pack label -> hit count")
    total_found: int = 0
    total_indexed: int = 0
    search_method: str = "enhanced_persistent_index"
    used_fallback: bool = False
    criteria: Dict[str, Any] = Field(default_factory=dict)


@dataclass
class QueryResult:
    """
    Profiles (indexed tier) or SearchResults (fallback tier) plus a summary.

    Both item types expose ``id``, ``name``, ``pack`` and ``pack_label``.
    """

    profiles: list
    summary: QuerySummary = field(default_factory=QuerySummary)

    @property
    def used_fallback(self) -> bool:
        return self.summary.used_fallback

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.profiles]
