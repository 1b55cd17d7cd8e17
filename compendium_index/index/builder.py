"""
Index builder - extract profiles from every tracked pack and persist them.

Builds are single-flight: a non-forced request made while a build is running
fails with BuildInProgressError, a forced request waits for the running build
and then starts its own. Single-document and single-pack failures never abort
a build; only an unsupported dialect does.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from compendium_index.config.settings import IndexCfg
from compendium_index.errors import (
    BuildInProgressError,
    PackEnumerationError,
    PersistenceWriteError,
)
from compendium_index.host.interfaces import PackSource
from compendium_index.ops.telemetry import get_logger
from compendium_index.persist.hashing import generate_fingerprint
from compendium_index.persist.index_store import IndexStore

from .dialects import get_extractor
from .schemas import IndexMetadata, PackFingerprint, PersistedIndex


logger = get_logger(__name__)

ProgressFn = Callable[[int, int, str], Union[Awaitable[None], None]]


class BuildState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"


class BuildLatch:
    """
    Build state token.

    ``try_acquire`` is a synchronous test-and-set, so no other task can run
    between the test and the set.
    """

    def __init__(self):
        self._state = BuildState.IDLE
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is BuildState.BUILDING

    def try_acquire(self) -> bool:
        if self._state is BuildState.BUILDING:
            return False
        self._state = BuildState.BUILDING
        self._idle.clear()
        return True

    async def acquire_queued(self) -> None:
        """Wait until the latch is idle, then take it."""
        while not self.try_acquire():
            await self._idle.wait()

    def release(self) -> None:
        self._state = BuildState.IDLE
        self._idle.set()


@dataclass
class BuildReport:
    """Outcome of one build."""

    index: PersistedIndex
    error_count: int
    pack_count: int
    duration_s: float
    persist_error: Optional[PersistenceWriteError] = None
    failed_packs: list[str] = field(default_factory=list)

    @property
    def profiles(self) -> list:
        return self.index.profiles

    @property
    def persisted(self) -> bool:
        return self.persist_error is None

    @property
    def message(self) -> str:
        error_text = f" ({self.error_count} extraction errors)" if self.error_count else ""
        text = (
            f"Enhanced creature index complete! {len(self.profiles)} creatures indexed "
            f"from {self.pack_count} packs in {round(self.duration_s)}s{error_text}"
        )
        if self.persist_error is not None:
            text += f"; failed to save index: {self.persist_error}"
        return text


class IndexBuilder:
    """Builds a fresh PersistedIndex from the live packs."""

    def __init__(self, source: PackSource, store: IndexStore, cfg: Optional[IndexCfg] = None):
        """
        Args:
            source: Host pack enumeration
            store: Persistence layer the finished index is written to
            cfg: Index configuration (dialect, tracked pack type and kinds)
        """
        self.source = source
        self.store = store
        self.cfg = cfg or IndexCfg()
        self.latch = BuildLatch()

    @property
    def in_progress(self) -> bool:
        return self.latch.busy

    async def build(self, force: bool = False, progress: Optional[ProgressFn] = None) -> BuildReport:
        """
        Build and persist a new index.

        Args:
            force: Wait for a running build instead of failing
            progress: Optional ``(done, total, pack_label)`` callback per pack

        Returns:
            BuildReport; check ``persist_error`` when durability matters

        Raises:
            BuildInProgressError: If not forced and a build is running
            UnsupportedDialectError: If the configured dialect has no extractor
        """
        if force:
            await self.latch.acquire_queued()
        elif not self.latch.try_acquire():
            raise BuildInProgressError()

        try:
            return await self._build(progress)
        finally:
            self.latch.release()

    def _is_tracked(self, doc: Any) -> bool:
        try:
            return isinstance(doc, dict) and doc.get("type") in self.cfg.tracked_kinds
        except Exception:
            return False

    async def _build(self, progress: Optional[ProgressFn]) -> BuildReport:
        extractor = get_extractor(self.cfg.dialect)
        start = time.perf_counter()

        packs = list(self.source.list_packs(self.cfg.tracked_pack_type))
        logger.info("index_build_started", dialect=extractor.dialect.value, packs=len(packs))

        profiles: list = []
        fingerprints: dict[str, PackFingerprint] = {}
        failed_packs: list[str] = []
        errors = 0

        for i, pack in enumerate(packs):
            docs: list = []
            try:
                if not pack.indexed:
                    await pack.ensure_index()
                fingerprints[pack.id] = generate_fingerprint(pack)
                docs = list(await pack.get_documents())
            except Exception as e:
                err = PackEnumerationError(pack.id, e)
                logger.warning("pack_enumeration_failed", pack=pack.id, label=pack.label, error=str(err))
                errors += 1
                failed_packs.append(pack.id)
                if pack.id not in fingerprints:
                    fingerprints[pack.id] = generate_fingerprint(pack)
                docs = []

            pack_profiles = 0
            for doc in docs:
                if not self._is_tracked(doc):
                    continue
                profile, doc_errors = extractor.extract(doc, pack)
                profiles.append(profile)
                errors += doc_errors
                pack_profiles += 1

            logger.debug("pack_indexed", pack=pack.id, profiles=pack_profiles)
            if progress is not None:
                result = progress(i + 1, len(packs), pack.label)
                if inspect.isawaitable(result):
                    await result

        index = PersistedIndex(
            metadata=IndexMetadata(
                schema_version=self.cfg.schema_version,
                built_at=time.time(),
                dialect=extractor.dialect,
                fingerprints=fingerprints,
                total_profiles=len(profiles),
                error_count=errors,
            ),
            profiles=profiles,
        )

        persist_error: Optional[PersistenceWriteError] = None
        try:
            await self.store.save(index)
        except PersistenceWriteError as e:
            persist_error = e
            logger.error("index_save_failed", key=self.store.key, error=str(e))

        report = BuildReport(
            index=index,
            error_count=errors,
            pack_count=len(packs),
            duration_s=time.perf_counter() - start,
            persist_error=persist_error,
            failed_packs=failed_packs,
        )
        logger.info(
            "index_build_complete",
            profiles=len(profiles),
            packs=len(packs),
            errors=errors,
            persisted=report.persisted,
            duration_ms=round(report.duration_s * 1000, 2),
        )
        return report
