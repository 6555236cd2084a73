"""
In-memory registry of video generation jobs.

The registry is owned by the application (see `main.create_app`) and handed
to the services that need it; it is never a module-level singleton. It is
only touched from the event loop thread, and none of its methods suspend,
so a read-modify-write of one job can never interleave with another task.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from config import CHECKPOINTS, JOB_RETENTION_SECONDS


class JobState(str, Enum):
    """Lifecycle of a generation job."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = (JobState.COMPLETED, JobState.FAILED)


@dataclass
class GenerationStatus:
    """
    Point-in-time view of a job.

    Attributes:
        job_id: Opaque identifier handed back to the caller.
        status: Current lifecycle state.
        progress: Last checkpoint reached (0 until the first one).
        video_id: Durable video record this job produces.
        error: Failure message, only set when status is FAILED.
    """
    job_id: str
    status: JobState = JobState.PROCESSING
    progress: int = 0
    video_id: Optional[str] = None
    error: Optional[str] = None

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> Dict:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "progress": self.progress,
            "video_id": self.video_id,
            "error": self.error,
        }


@dataclass
class _JobEntry:
    status: GenerationStatus
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None
    finished_at: Optional[float] = None
    finalizing: bool = False


class JobRegistry:
    """
    Maps job ids to their current status.

    Terminal jobs stay queryable for `retention_seconds` after they finish,
    then get evicted either lazily on lookup or by `evict_expired`.

    Example:
        >>> registry = JobRegistry()
        >>> job_id = registry.create("video-1")
        >>> registry.get(job_id).progress
        0
    """

    def __init__(
        self,
        retention_seconds: float = JOB_RETENTION_SECONDS,
        checkpoints: Iterable[int] = CHECKPOINTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.retention_seconds = retention_seconds
        self.checkpoints = tuple(checkpoints)
        self.final_progress = self.checkpoints[-1]
        self._allowed_progress = frozenset((0,) + self.checkpoints)
        self._clock = clock
        self._jobs: Dict[str, _JobEntry] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    # --- Lifecycle ---

    def create(self, video_id: str) -> str:
        """Register a new processing job for `video_id` and return its id."""
        job_id = str(uuid.uuid4())
        self._jobs[job_id] = _JobEntry(status=GenerationStatus(job_id=job_id, video_id=video_id))
        logging.debug(f"Job {job_id} registered for video {video_id}")
        return job_id

    def get(self, job_id: str) -> Optional[GenerationStatus]:
        """Return a snapshot of the job, or None if unknown or expired."""
        entry = self._jobs.get(job_id)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._drop(job_id)
            return None
        return replace(entry.status)

    def update(
        self,
        job_id: str,
        *,
        progress: Optional[int] = None,
        status: Optional[JobState] = None,
        error: Optional[str] = None,
    ) -> Optional[GenerationStatus]:
        """
        Apply a partial update and return the new snapshot.

        Unknown jobs are ignored (returns None): the advancer may outlive its
        registry entry. Terminal jobs are frozen and returned unchanged.
        """
        entry = self._jobs.get(job_id)
        if entry is None:
            return None

        current = entry.status
        if current.is_terminal():
            logging.debug(f"Job {job_id} is {current.status.value}; update ignored")
            return replace(current)

        new_progress = current.progress if progress is None else progress
        new_status = current.status if status is None else JobState(status)

        if new_progress not in self._allowed_progress:
            raise ValueError(f"Progress {new_progress} is not a checkpoint")
        if new_progress < current.progress:
            raise ValueError(f"Progress cannot go back from {current.progress} to {new_progress}")
        if (new_progress == self.final_progress) != (new_status == JobState.COMPLETED):
            raise ValueError(f"Progress {self.final_progress} and status 'completed' must be set together")

        current.progress = new_progress
        current.status = new_status
        if error is not None:
            current.error = error
        if current.is_terminal():
            entry.finished_at = self._clock()
        return replace(current)

    def remove(self, job_id: str) -> bool:
        """Forget a job. A still-running advancer notices and stops silently."""
        if job_id not in self._jobs:
            return False
        self._drop(job_id)
        return True

    def remove_for_video(self, video_id: str) -> int:
        """Forget every job producing `video_id`; returns how many were dropped."""
        job_ids = [job_id for job_id, entry in self._jobs.items() if entry.status.video_id == video_id]
        for job_id in job_ids:
            self._drop(job_id)
        return len(job_ids)

    # --- Advancer handles ---

    def attach(self, job_id: str, task: asyncio.Task) -> None:
        entry = self._jobs.get(job_id)
        if entry is not None:
            entry.task = task

    def cancel_event(self, job_id: str) -> Optional[asyncio.Event]:
        entry = self._jobs.get(job_id)
        return entry.cancel_event if entry is not None else None

    def begin_finalizing(self, job_id: str) -> bool:
        """
        Mark the job as saving its result. From here on it can no longer be
        cancelled. False if the job is gone, finished or already cancelled.
        """
        entry = self._jobs.get(job_id)
        if entry is None or entry.status.is_terminal() or entry.cancel_event.is_set():
            return False
        entry.finalizing = True
        return True

    def cancel(self, job_id: str) -> bool:
        """Ask the job's advancer to stop. False if unknown, finished or already saving."""
        entry = self._jobs.get(job_id)
        if entry is None or entry.status.is_terminal() or entry.finalizing:
            return False
        entry.cancel_event.set()
        return True

    # --- Retention ---

    def evict_expired(self) -> int:
        """Drop every terminal job past its retention period."""
        expired = [job_id for job_id, entry in self._jobs.items() if self._is_expired(entry)]
        for job_id in expired:
            self._drop(job_id)
        if expired:
            logging.info(f"🧹 Evicted {len(expired)} finished job(s)")
        return len(expired)

    async def shutdown(self) -> None:
        """Signal every advancer to stop and wait for them to finish."""
        tasks = []
        for entry in self._jobs.values():
            entry.cancel_event.set()
            if entry.task is not None and not entry.task.done():
                tasks.append(entry.task)
        if tasks:
            logging.info(f"Waiting for {len(tasks)} generation job(s) to stop")
            await asyncio.gather(*tasks, return_exceptions=True)

    def _is_expired(self, entry: _JobEntry) -> bool:
        if entry.finished_at is None:
            return False
        return self._clock() - entry.finished_at >= self.retention_seconds

    def _drop(self, job_id: str) -> None:
        entry = self._jobs.pop(job_id)
        entry.cancel_event.set()
