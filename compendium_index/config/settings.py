"""Application settings and configuration schema."""

import json
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel


class IndexCfg(BaseModel):
    """Configuration for the enhanced creature index."""
    enhanced_index_enabled: bool = True
    auto_rebuild: bool = True
    default_limit: int = 500
    schema_version: str = "1.0.0"
    dialect: str = "dnd5e"
    tracked_pack_type: str = "Actor"
    tracked_kinds: List[str] = ["npc", "character"]


class SearchCfg(BaseModel):
    """Limits for the free-text fallback search."""
    per_pack_cap: int = 100
    global_cap: int = 100
    final_cap: int = 50
    min_query_chars: int = 3
    filtered_search_limit: int = 100


class StoreCfg(BaseModel):
    """Where the persisted index lives."""
    backend: Literal["file", "sqlite"] = "file"
    root: str = "data/store"
    world_id: str = "default"
    filename: str = "enhanced-creature-index.json"
    job_history: Optional[str] = None    # JSONL log of finished rebuild jobs


class LoggingCfg(BaseModel):
    """structlog output configuration."""
    level: str = "INFO"
    json_output: bool = True


class Settings(BaseModel):
    """Main application settings."""
    index: IndexCfg = IndexCfg()
    search: SearchCfg = SearchCfg()
    store: StoreCfg = StoreCfg()
    logging: LoggingCfg = LoggingCfg()

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        """Load settings from a JSON file; missing keys keep their defaults."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)
