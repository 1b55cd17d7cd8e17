"""
Index data models.

Profiles are a tagged union over the active dialect; one persisted index
only ever holds profiles of a single dialect.
"""

import time
from enum import Enum
from typing import Annotated, Dict, List, Literal, Union

from pydantic import BaseModel, Field, field_validator


class Dialect(str, Enum):
    """Schema variants a deployment can extract profiles under."""
    DND5E = "dnd5e"
    PF2E = "pf2e"


class ProfileBase(BaseModel):
    """Fields shared by every dialect."""

    id: str = Field(..., description="Source document id")
    name: str = Field(..., description="Document name")
    type: str = Field(default="npc", description="Document kind (npc, character)")
    pack: str = Field(..., description="Source pack id")
    pack_label: str = Field(..., description="Source pack label")
    power_metric: float = Field(default=0.0, description="Ordering key (CR or level)")
    creature_type: str = Field(default="unknown")
    size: str = Field(default="medium")
    hit_points: int = Field(default=0)
    armor_class: int = Field(default=10)
    has_spells: bool = Field(default=False)
    alignment: str = Field(default="")
    description: str = Field(default="")
    img: str = Field(default="")
    extraction_error: bool = Field(default=False, description="True on placeholder profiles")


class Dnd5eProfile(ProfileBase):
    """Challenge-rating based profile."""

    dialect: Literal["dnd5e"] = "dnd5e"
    has_legendary_actions: bool = False
    alignment: str = "unaligned"

    @property
    def challenge_rating(self) -> float:
        return self.power_metric

    @property
    def rarity(self) -> str:
        return "common"

    @property
    def traits(self) -> List[str]:
        return []

    def summary(self) -> str:
        return f"CR {_fmt_power(self.power_metric)} {self.creature_type} from {self.pack_label}"


class Pf2eProfile(ProfileBase):
    """Level and trait based profile."""

    dialect: Literal["pf2e"] = "pf2e"
    traits: List[str] = Field(default_factory=list)
    rarity: str = "common"
    alignment: str = "N"

    @field_validator("traits")
    @classmethod
    def _normalize_traits(cls, v: List[str]) -> List[str]:
        seen: list[str] = []
        for t in v:
            t = str(t).strip().lower()
            if t and t not in seen:
                seen.append(t)
        return seen

    @property
    def level(self) -> float:
        return self.power_metric

    @property
    def has_legendary_actions(self) -> bool:
        return False

    def summary(self) -> str:
        return (
            f"Level {_fmt_power(self.power_metric)} {self.creature_type} "
            f"({self.rarity}) from {self.pack_label}"
        )


Profile = Annotated[Union[Dnd5eProfile, Pf2eProfile], Field(discriminator="dialect")]


def _fmt_power(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class PackFingerprint(BaseModel):
    """Cheap per-pack signature used for staleness detection."""

    pack_id: str
    pack_label: str
    last_modified: int = Field(..., description="Epoch milliseconds")
    document_count: int
    checksum: str


class IndexMetadata(BaseModel):
    """Header of a persisted index."""

    schema_version: str
    built_at: float = Field(default_factory=time.time, description="Unix timestamp")
    dialect: Dialect
    fingerprints: Dict[str, PackFingerprint] = Field(default_factory=dict)
    total_profiles: int = 0
    error_count: int = 0


class PersistedIndex(BaseModel):
    """Metadata plus every extracted profile."""

    metadata: IndexMetadata
    profiles: List[Profile] = Field(default_factory=list)
