"""
Store key management.

The persisted index is scoped to one world (collection); every store
backend addresses it through the same relative key.
"""

from dataclasses import dataclass
from pathlib import Path

from compendium_index.config.settings import StoreCfg


@dataclass
class IndexPaths:
    """Keys for a world's derived data."""

    world_id: str
    filename: str = "enhanced-creature-index.json"

    @property
    def world_dir(self) -> str:
        """Directory key holding the world's artifacts."""
        return f"worlds/{self.world_id}"

    @property
    def index_key(self) -> str:
        """Key of the persisted creature index."""
        return f"{self.world_dir}/{self.filename}"

    @classmethod
    def from_cfg(cls, cfg: StoreCfg) -> "IndexPaths":
        return cls(world_id=cfg.world_id, filename=cfg.filename)


def ensure_dirs(root: Path, paths: IndexPaths) -> Path:
    """
    Create the world directory under ``root`` if it does not exist.

    Returns:
        Absolute path of the world directory
    """
    world_dir = Path(root) / paths.world_dir
    world_dir.mkdir(parents=True, exist_ok=True)
    return world_dir
