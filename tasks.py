# tasks.py

import asyncio
import logging
from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool

from config import (
    CHECKPOINTS,
    CHECKPOINT_INTERVAL_SECONDS,
    DEFAULT_VIDEO_DURATION,
    EVICTION_SWEEP_SECONDS,
    THUMBNAIL_BASE_URL,
    VIDEO_BASE_URL,
)
from models import VideoStatus
from registry import JobRegistry, JobState
from repository import VideoStore

CANCELLED_MESSAGE = "Generation cancelled"


def completion_fields(video_id: str) -> dict:
    """Durable fields written once a video has been generated."""
    return {
        "status": VideoStatus.COMPLETED.value,
        "url": f"{VIDEO_BASE_URL}/{video_id}.mp4",
        "thumbnail": f"{THUMBNAIL_BASE_URL}/{video_id}.jpg",
        "duration": DEFAULT_VIDEO_DURATION,
        "completed_at": datetime.now(timezone.utc),
    }


async def _wait_for_cancel(event: asyncio.Event, timeout: float) -> bool:
    """Sleep up to `timeout` seconds; True if the job was signalled meanwhile."""
    try:
        await asyncio.wait_for(event.wait(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        return False


async def _mark_record_failed(store: VideoStore, video_id: str, message: str) -> None:
    try:
        await run_in_threadpool(
            store.update_record_by_id,
            video_id,
            {
                "status": VideoStatus.FAILED.value,
                "error": message,
                "failed_at": datetime.now(timezone.utc),
            },
        )
    except Exception as e:
        logging.error(f"Could not mark video {video_id} as failed: {e}")


async def advance_job(
    registry: JobRegistry,
    store: VideoStore,
    job_id: str,
    video_id: str,
    interval: float = CHECKPOINT_INTERVAL_SECONDS,
    checkpoints=CHECKPOINTS,
):
    """
    Background task that walks one job through its progress checkpoints.

    The durable record is written before the final registry update, and that
    update sets progress and status together, so nobody ever reads a job at
    the final checkpoint that is still "processing".
    """
    cancel_event = registry.cancel_event(job_id)
    if cancel_event is None:
        return
    final = checkpoints[-1]

    for progress in checkpoints:
        cancelled = await _wait_for_cancel(cancel_event, interval)
        if progress == final and not cancelled:
            cancelled = not registry.begin_finalizing(job_id)

        current = registry.get(job_id)
        if current is None:
            logging.warning(f"Job {job_id} left the registry; stopping")
            return
        if cancelled:
            logging.info(f"🛑 Job {job_id} cancelled at {current.progress}%")
            registry.update(job_id, status=JobState.FAILED, error=CANCELLED_MESSAGE)
            await _mark_record_failed(store, video_id, CANCELLED_MESSAGE)
            return

        if progress != final:
            registry.update(job_id, progress=progress)
            logging.info(f"Job {job_id} at {progress}%")
            continue

        # Durable write first: a failed save must never show up as "completed".
        try:
            video = await run_in_threadpool(store.update_record_by_id, video_id, completion_fields(video_id))
            if video is None:
                raise LookupError(f"Video record {video_id} not found")
        except Exception as e:
            logging.error(f"❌ Job {job_id} failed while saving video {video_id}. Error: {e}")
            registry.update(job_id, status=JobState.FAILED, error=str(e) or type(e).__name__)
            await _mark_record_failed(store, video_id, str(e) or type(e).__name__)
            return

        # The entry may have been removed while the write was in flight.
        if registry.update(job_id, progress=final, status=JobState.COMPLETED) is not None:
            logging.info(f"✅ Job {job_id} finished. Video at: {video.url}")


def _log_task_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logging.error(f"Generation task {task.get_name()} crashed: {exc!r}")


def start_advancer(
    registry: JobRegistry,
    store: VideoStore,
    job_id: str,
    video_id: str,
    interval: float = CHECKPOINT_INTERVAL_SECONDS,
    checkpoints=CHECKPOINTS,
) -> asyncio.Task:
    """Launch `advance_job` without awaiting it and keep its handle on the job."""
    task = asyncio.create_task(
        advance_job(registry, store, job_id, video_id, interval, checkpoints),
        name=f"generate-{job_id}",
    )
    task.add_done_callback(_log_task_result)
    registry.attach(job_id, task)
    return task


async def evict_expired_jobs(registry: JobRegistry, interval: float = EVICTION_SWEEP_SECONDS):
    """Periodically drop finished jobs past their retention period."""
    while True:
        await asyncio.sleep(interval)
        registry.evict_expired()
