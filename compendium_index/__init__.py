"""Cached, queryable index over host compendium packs."""

__version__ = "1.0.0"
