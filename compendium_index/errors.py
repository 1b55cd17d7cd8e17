"""
Error taxonomy for the compendium index.

Per-document and per-pack failures are recovered locally by the builder;
only malformed queries and build conflicts are surfaced to callers.
"""

from typing import Optional


class CompendiumIndexError(Exception):
    """Base class for all index errors."""
    pass


class ValidationError(CompendiumIndexError, ValueError):
    """Malformed query input (too short, no usable terms, bad criteria)."""
    pass


class BuildInProgressError(CompendiumIndexError):
    """A non-forced rebuild was requested while another build is running."""

    def __init__(self, message: str = "Index build already in progress"):
        super().__init__(message)


class UnsupportedDialectError(CompendiumIndexError):
    """No extractor is registered for the active dialect."""

    def __init__(self, dialect: str, supported: tuple[str, ...] = ()):
        self.dialect = dialect
        self.supported = supported
        hint = f" Supported: {', '.join(supported)}." if supported else ""
        super().__init__(f"Enhanced creature index not supported for dialect: {dialect}.{hint}")


class ExtractionError(CompendiumIndexError):
    """Extraction of a single document failed."""

    def __init__(self, doc_id: str, doc_name: str, cause: Optional[BaseException] = None):
        self.doc_id = doc_id
        self.doc_name = doc_name
        self.cause = cause
        super().__init__(f"Failed to extract {doc_name!r} ({doc_id}): {cause}")


class PackEnumerationError(CompendiumIndexError):
    """Listing or loading the documents of a pack failed."""

    def __init__(self, pack_id: str, cause: Optional[BaseException] = None):
        self.pack_id = pack_id
        self.cause = cause
        super().__init__(f"Failed to load documents from pack {pack_id}: {cause}")


class PersistenceReadError(CompendiumIndexError):
    """The backing store could not be read."""
    pass


class PersistenceWriteError(CompendiumIndexError):
    """The backing store rejected a write."""
    pass
