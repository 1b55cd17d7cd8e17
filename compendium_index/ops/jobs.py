"""
Background index rebuilds.

A rebuild job wraps ``IndexCache.rebuild`` in an asyncio task and tracks
per-pack progress. At most one job runs at a time: starting a rebuild while
one is active hands back the active job. Finished jobs are appended to an
optional JSONL history file.
"""

import asyncio
import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Optional

from compendium_index.ops.telemetry import get_logger

if TYPE_CHECKING:
    from compendium_index.index.cache import IndexCache


logger = get_logger(__name__)

JobState = Literal["queued", "running", "succeeded", "failed"]

# Share of the progress bar covered by pack processing; saving is the rest
PACK_SHARE = 0.95


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RebuildJob:
    """State of one background rebuild."""

    id: str
    force: bool = True
    state: JobState = "queued"
    progress: float = 0.0           # 0.0 to 1.0
    message: str = "Queued index rebuild"
    packs_done: int = 0
    packs_total: int = 0
    submitted_at: str = field(default_factory=_utcnow)
    finished_at: Optional[str] = None
    total_creatures: Optional[int] = None
    error_count: Optional[int] = None
    persisted: Optional[bool] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.state in ("succeeded", "failed")

    def to_dict(self) -> dict:
        return asdict(self)


class RebuildJobs:
    """
    Runs index rebuilds in the background of the current event loop.

    Example:
        >>> jobs = RebuildJobs(cache, "data/store/rebuilds.jsonl")
        >>> job = jobs.start()
        >>> await jobs.wait(job.id)
    """

    def __init__(self, cache: "IndexCache", history_file: Optional[Path | str] = None):
        """
        Args:
            cache: Cache whose index is rebuilt
            history_file: JSONL file finished jobs are appended to (optional)
        """
        self.cache = cache
        self.history_file = Path(history_file) if history_file else None
        self._jobs: dict[str, RebuildJob] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._active: Optional[str] = None

    @property
    def active(self) -> Optional[RebuildJob]:
        return self._jobs.get(self._active) if self._active else None

    def latest(self) -> Optional[RebuildJob]:
        """Most recently started job of this process."""
        if not self._jobs:
            return None
        return next(reversed(self._jobs.values()))

    def get(self, job_id: str) -> Optional[RebuildJob]:
        return self._jobs.get(job_id)

    def start(self, force: bool = True) -> RebuildJob:
        """
        Start a rebuild unless one is already running.

        Must be called from inside a running event loop.

        Returns:
            The new job, or the job that is already running
        """
        running = self.active
        if running is not None:
            return running

        job = RebuildJob(id=uuid.uuid4().hex, force=force)
        self._jobs[job.id] = job
        self._active = job.id
        self._tasks[job.id] = asyncio.create_task(self._run(job))
        logger.info("rebuild_job_started", job_id=job.id, force=force)
        return job

    def _progress(self, job: RebuildJob):
        def on_pack(done: int, total: int, label: str) -> None:
            job.packs_done = done
            job.packs_total = total
            job.progress = PACK_SHARE * done / total if total else PACK_SHARE
            job.message = f"Processing {label} ({done}/{total})"
        return on_pack

    async def _run(self, job: RebuildJob) -> None:
        job.state = "running"
        job.message = "Building enhanced creature index..."
        try:
            report = await self.cache.rebuild(force=job.force, progress=self._progress(job))
        except Exception as e:
            job.state = "failed"
            job.error = str(e)
            job.message = f"Failed to rebuild creature index: {e}"
            logger.error("rebuild_job_failed", job_id=job.id, error=str(e), error_type=type(e).__name__)
        else:
            job.state = "succeeded"
            job.progress = 1.0
            job.total_creatures = len(report.profiles)
            job.error_count = report.error_count
            job.persisted = report.persisted
            job.message = report.message
            logger.info("rebuild_job_succeeded", job_id=job.id, profiles=job.total_creatures)
        finally:
            job.finished_at = _utcnow()
            if self._active == job.id:
                self._active = None
            self._tasks.pop(job.id, None)
            self._record(job)

    def _record(self, job: RebuildJob) -> None:
        if self.history_file is None:
            return
        try:
            self.history_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.history_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(job.to_dict()) + "\n")
        except OSError as e:
            logger.warning("rebuild_history_write_failed", path=str(self.history_file), error=str(e))

    async def wait(self, job_id: str) -> Optional[RebuildJob]:
        """Wait for a job started by this manager to finish."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get(job_id)

    def history(self, limit: Optional[int] = None) -> list[RebuildJob]:
        """
        Finished jobs from the history file, most recent first.

        Unreadable lines are skipped.
        """
        if self.history_file is None or not self.history_file.exists():
            return []

        jobs: list[RebuildJob] = []
        with open(self.history_file, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    jobs.append(RebuildJob(**json.loads(line)))
                except (json.JSONDecodeError, TypeError) as e:
                    logger.warning("rebuild_history_line_skipped", error=str(e))

        jobs.reverse()
        return jobs[:limit] if limit is not None else jobs
