"""
Host platform adapters.

Provides:
- Protocols for packs, pack sources, hook buses and flat stores
- An in-process hook bus
- A directory-backed pack source (one JSON file per pack)
"""

from .interfaces import FlatStore, HookBus, PackHandle, PackSource
from .hooks import Hooks
from .directory import DirectoryPackSource, JsonPack

__all__ = [
    "FlatStore",
    "HookBus",
    "PackHandle",
    "PackSource",
    "Hooks",
    "DirectoryPackSource",
    "JsonPack",
]
