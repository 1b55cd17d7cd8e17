"""
Dialect-specific profile extraction.

Each supported dialect has one extractor; the builder picks it once per
build and calls ``extract`` on every recognized document. ``extract`` never
raises: a document it cannot read becomes a placeholder profile with
``extraction_error=True``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from compendium_index.errors import ExtractionError, UnsupportedDialectError
from compendium_index.ops.telemetry import get_logger

from .extract import (
    as_int,
    as_str_list,
    as_text,
    dig,
    doc_identity,
    doc_image,
    doc_system,
    first_present,
    parse_power,
    scalar_of,
)
from .schemas import Dialect, Dnd5eProfile, Pf2eProfile, ProfileBase


logger = get_logger(__name__)

PLACEHOLDER_DESCRIPTION = "Data extraction failed"

PF2E_CREATURE_TRAITS = (
    "aberration", "animal", "beast", "celestial", "construct", "dragon",
    "elemental", "fey", "fiend", "fungus", "humanoid", "monitor", "ooze",
    "plant", "undead",
)

PF2E_SIZES = {
    "tiny": "tiny",
    "sm": "small",
    "med": "medium",
    "lg": "large",
    "huge": "huge",
    "grg": "gargantuan",
}


def _first_text(obj: Any, paths: Iterable[str], default: str) -> str:
    """First path whose value (unwrapped) is a usable string or number."""
    for path in paths:
        value = scalar_of(dig(obj, path))
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)) and str(value).strip():
            return str(value)
    return default


def _first_int(obj: Any, paths: Iterable[str], default: int) -> int:
    """First path whose value coerces to a non-zero int."""
    for path in paths:
        value = as_int(dig(obj, path), 0)
        if value:
            return value
    return default


def _positive(value: Any, *keys: str) -> bool:
    """
    Truthiness for resource-like fields.

    Dicts count as positive only when one of ``keys`` (or any nested slot's
    ``max``) is above zero; plain values use ordinary truthiness.
    """
    if isinstance(value, dict):
        for key in keys or ("max", "value"):
            if as_int(value.get(key), 0) > 0:
                return True
        return any(
            isinstance(slot, dict) and as_int(slot.get("max"), 0) > 0
            for slot in value.values()
        )
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value > 0
    return bool(value)


class DialectExtractor(ABC):
    """Base extractor interface for one dialect."""

    dialect: Dialect

    @abstractmethod
    def _extract(self, doc: dict, pack: Any) -> ProfileBase:
        """Build a profile; may raise on malformed documents."""
        pass

    @abstractmethod
    def placeholder(self, doc: Any, pack: Any) -> ProfileBase:
        """Default-safe profile for a document that failed extraction."""
        pass

    @abstractmethod
    def power_of(self, system: dict) -> float:
        """Power metric read from a ``system`` block."""
        pass

    @abstractmethod
    def creature_type_of(self, system: dict) -> str:
        """Creature type read from a ``system`` block."""
        pass

    def extract(self, doc: Any, pack: Any) -> tuple[ProfileBase, int]:
        """
        Extract one profile.

        Returns:
            Tuple of (profile, errors) where errors is 0 or 1
        """
        try:
            if not isinstance(doc, dict):
                raise TypeError(f"document is {type(doc).__name__}, not a mapping")
            return self._extract(doc, pack), 0
        except Exception as e:
            doc_id, name, _ = doc_identity(doc)
            err = ExtractionError(doc_id, name, e)
            logger.warning("profile_extraction_failed", pack=pack.id, error=str(err))
            return self.placeholder(doc, pack), 1

    def _common(self, doc: Any, pack: Any) -> dict:
        doc_id, name, kind = doc_identity(doc)
        return {
            "id": doc_id,
            "name": name,
            "type": kind or "npc",
            "pack": pack.id,
            "pack_label": pack.label,
            "img": doc_image(doc) or "",
        }


class Dnd5eExtractor(DialectExtractor):
    """Challenge-rating dialect."""

    dialect = Dialect.DND5E

    CR_PATHS = (
        "details.cr", "cr", "attributes.cr", "challenge.rating", "challenge.cr",
    )
    TYPE_PATHS = (
        "details.type.value", "details.type", "type.value", "type",
        "race.value", "race", "details.race",
    )
    SIZE_PATHS = (
        "traits.size.value", "traits.size", "size.value", "size", "details.size",
    )
    HP_PATHS = (
        "attributes.hp.max", "hp.max", "attributes.hp.value", "hp.value",
        "health.max", "health.value",
    )
    AC_PATHS = (
        "attributes.ac.value", "ac.value", "attributes.ac", "ac",
        "armor.value", "armor",
    )
    ALIGNMENT_PATHS = (
        "details.alignment.value", "details.alignment", "alignment.value", "alignment",
    )

    def power_of(self, system: dict) -> float:
        return parse_power(first_present(system, self.CR_PATHS, 0))

    def creature_type_of(self, system: dict) -> str:
        return _first_text(system, self.TYPE_PATHS, "unknown").lower()

    def _has_spells(self, system: dict) -> bool:
        return (
            _positive(dig(system, "spells"))
            or bool(dig(system, "attributes.spellcasting"))
            or as_int(dig(system, "details.spellLevel"), 0) > 0
            or _positive(dig(system, "resources.spell"), "max")
            or bool(dig(system, "spellcasting"))
            or bool(dig(system, "traits.spellcasting"))
            or bool(dig(system, "details.spellcaster"))
        )

    def _has_legendary_actions(self, system: dict) -> bool:
        return (
            _positive(dig(system, "resources.legact"), "max", "value")
            or bool(dig(system, "legendary"))
            or _positive(dig(system, "resources.legres"), "value")
            or bool(dig(system, "details.legendary"))
            or bool(dig(system, "traits.legendary"))
            or _positive(dig(system, "resources.legendary"), "max")
        )

    def _extract(self, doc: dict, pack: Any) -> Dnd5eProfile:
        system = doc_system(doc)
        return Dnd5eProfile(
            **self._common(doc, pack),
            power_metric=self.power_of(system),
            creature_type=self.creature_type_of(system),
            size=_first_text(system, self.SIZE_PATHS, "medium").lower(),
            hit_points=_first_int(system, self.HP_PATHS, 0),
            armor_class=_first_int(system, self.AC_PATHS, 10),
            has_spells=self._has_spells(system),
            has_legendary_actions=self._has_legendary_actions(system),
            alignment=_first_text(system, self.ALIGNMENT_PATHS, "unaligned").lower(),
            description=as_text(
                dig(system, "details.biography") or dig(system, "description"), ""
            ),
        )

    def placeholder(self, doc: Any, pack: Any) -> Dnd5eProfile:
        return Dnd5eProfile(
            **self._common(doc, pack),
            power_metric=0,
            creature_type="unknown",
            size="medium",
            hit_points=1,
            armor_class=10,
            has_spells=False,
            has_legendary_actions=False,
            alignment="unaligned",
            description=PLACEHOLDER_DESCRIPTION,
            extraction_error=True,
        )


class Pf2eExtractor(DialectExtractor):
    """Level and trait dialect."""

    dialect = Dialect.PF2E

    def power_of(self, system: dict) -> float:
        return parse_power(dig(system, "details.level.value", 0))

    def traits_of(self, system: dict) -> list[str]:
        return [t.lower() for t in as_str_list(dig(system, "traits.value"))]

    def creature_type_of(self, system: dict) -> str:
        for trait in self.traits_of(system):
            if trait in PF2E_CREATURE_TRAITS:
                return trait
        return "unknown"

    def _has_spells(self, doc: dict, system: dict) -> bool:
        spellcasting = dig(system, "spellcasting")
        if isinstance(spellcasting, dict) and spellcasting:
            return True
        items = doc.get("items")
        if isinstance(items, list):
            return any(
                isinstance(item, dict) and item.get("type") == "spellcastingEntry"
                for item in items
            )
        return False

    def _extract(self, doc: dict, pack: Any) -> Pf2eProfile:
        system = doc_system(doc)
        raw_size = as_text(dig(system, "traits.size.value"), "med").lower()
        return Pf2eProfile(
            **self._common(doc, pack),
            power_metric=self.power_of(system),
            traits=self.traits_of(system),
            creature_type=self.creature_type_of(system),
            rarity=as_text(dig(system, "traits.rarity"), "common").lower(),
            size=PF2E_SIZES.get(raw_size, "medium"),
            hit_points=as_int(dig(system, "attributes.hp.max"), 0),
            armor_class=as_int(dig(system, "attributes.ac.value"), 0) or 10,
            has_spells=self._has_spells(doc, system),
            alignment=as_text(dig(system, "details.alignment.value"), "N").upper(),
            description=as_text(
                dig(system, "details.publicNotes") or dig(system, "details.biography"), ""
            ),
        )

    def placeholder(self, doc: Any, pack: Any) -> Pf2eProfile:
        return Pf2eProfile(
            **self._common(doc, pack),
            power_metric=0,
            traits=[],
            creature_type="unknown",
            rarity="common",
            size="medium",
            hit_points=1,
            armor_class=10,
            has_spells=False,
            alignment="N",
            description=PLACEHOLDER_DESCRIPTION,
            extraction_error=True,
        )


EXTRACTORS: dict[Dialect, DialectExtractor] = {
    Dialect.DND5E: Dnd5eExtractor(),
    Dialect.PF2E: Pf2eExtractor(),
}


def get_extractor(dialect: str | Dialect) -> DialectExtractor:
    """
    Resolve the extractor for a dialect.

    Raises:
        UnsupportedDialectError: If no extractor is registered
    """
    try:
        return EXTRACTORS[Dialect(dialect)]
    except (ValueError, KeyError):
        raise UnsupportedDialectError(
            str(getattr(dialect, "value", dialect)),
            tuple(d.value for d in EXTRACTORS),
        ) from None


def supported_dialects() -> tuple[str, ...]:
    return tuple(d.value for d in EXTRACTORS)


def resolve_dialect(value: Optional[str]) -> Dialect:
    """Dialect enum for ``value``; raises UnsupportedDialectError when unknown."""
    return get_extractor(value or "").dialect
