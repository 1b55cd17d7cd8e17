"""
Enhanced creature index: profile models and dialect extraction.

The builder, cache and invalidation listener live in their own modules
(``index.builder``, ``index.cache``, ``index.invalidation``) because they
depend on the persistence layer, which itself imports the models here.
"""

from .schemas import (
    Dialect,
    Dnd5eProfile,
    IndexMetadata,
    PackFingerprint,
    PersistedIndex,
    Pf2eProfile,
    Profile,
    ProfileBase,
)
from .dialects import DialectExtractor, get_extractor, resolve_dialect, supported_dialects

__all__ = [
    "Dialect",
    "Dnd5eProfile",
    "IndexMetadata",
    "PackFingerprint",
    "PersistedIndex",
    "Pf2eProfile",
    "Profile",
    "ProfileBase",
    "DialectExtractor",
    "get_extractor",
    "resolve_dialect",
    "supported_dialects",
]
