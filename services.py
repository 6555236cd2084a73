"""
Service layer for the product video generation backend.
Starts generation jobs, answers status queries and serves the template catalog.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from config import CHECKPOINT_INTERVAL_SECONDS, TEMPLATES
from models import Video, VideoStatus
from registry import GenerationStatus, JobRegistry
from repository import VideoStore
from schemas import TemplateResponse
from tasks import start_advancer


class GenerationService:
    """
    Accept-and-track front door for video generation.

    Status lookups are scoped to the requesting user. A job that exists but
    belongs to someone else is reported exactly like an unknown job (None),
    so callers cannot probe for other users' job ids. Keep it that way: do
    not split this into separate "forbidden" and "not found" outcomes.
    """

    def __init__(
        self,
        registry: JobRegistry,
        store: VideoStore,
        interval: float = CHECKPOINT_INTERVAL_SECONDS,
    ):
        self.registry = registry
        self.store = store
        self.interval = interval

    async def start_video_generation(
        self,
        template_id: str,
        product_data: Dict[str, Any],
        settings: Optional[Dict[str, Any]],
        user_id: str,
    ) -> str:
        """
        Create the video record, register its job and start the advancer.

        Returns the job id right away; the job keeps running in the background.
        Errors while creating the record propagate and no job is registered.
        """
        if not template_id:
            raise ValueError("A template id is required.")
        if not any(template["id"] == template_id for template in TEMPLATES):
            raise ValueError(f"Unknown template: {template_id}")
        name = (product_data or {}).get("name")
        if not name:
            raise ValueError("A product name is required.")

        images = product_data.get("images") or []
        video_id = await run_in_threadpool(
            self.store.create_record,
            {
                "title": f"Video {name}",
                "description": product_data.get("description"),
                "template_id": template_id,
                "settings": settings or {},
                "input_image_url": str(images[0]) if images else None,
                "user_id": user_id,
                "status": VideoStatus.PROCESSING.value,
            },
        )

        job_id = self.registry.create(video_id)
        start_advancer(
            self.registry,
            self.store,
            job_id,
            video_id,
            interval=self.interval,
            checkpoints=self.registry.checkpoints,
        )
        logging.info(f"✨ Job {job_id} submitted for video {video_id} (template {template_id})")
        return job_id

    async def get_generation_status(self, job_id: str, user_id: str) -> Optional[GenerationStatus]:
        """Return the job snapshot, or None if unknown or not owned by `user_id`."""
        status = self.registry.get(job_id)
        if status is None:
            return None

        if status.video_id:
            video = await run_in_threadpool(self.store.find_record_by_id_and_owner, status.video_id, user_id)
            if video is None:
                return None

        # Re-read: the job may have moved on while ownership was checked.
        return self.registry.get(job_id)

    async def cancel_generation(self, job_id: str, user_id: str) -> Optional[GenerationStatus]:
        """
        Signal a job to stop. Same visibility rules as `get_generation_status`.
        Raises ValueError once the job has finished or started saving its video.
        """
        status = await self.get_generation_status(job_id, user_id)
        if status is None:
            return None
        if not self.registry.cancel(job_id):
            raise ValueError("Job can no longer be cancelled.")
        logging.info(f"Cancellation requested for job {job_id}")
        return status

    def get_available_templates(self) -> List[TemplateResponse]:
        return [TemplateResponse(**template) for template in TEMPLATES]

    async def list_videos(
        self,
        user_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Video], int]:
        """One page of the user's videos and the total number of matches."""
        return await run_in_threadpool(self.store.find_records_by_owner, user_id, status, search, page, limit)

    async def get_video(self, video_id: str, user_id: str) -> Optional[Video]:
        return await run_in_threadpool(self.store.find_record_by_id_and_owner, video_id, user_id)

    async def delete_video(self, video_id: str, user_id: str) -> bool:
        """
        Delete one of the user's videos and drop any job still tracking it.
        False if the video does not exist or belongs to someone else.
        """
        deleted = await run_in_threadpool(self.store.delete_record_by_id_and_owner, video_id, user_id)
        if not deleted:
            return False
        dropped = self.registry.remove_for_video(video_id)
        if dropped:
            logging.info(f"🗑️ Dropped {dropped} job(s) for deleted video {video_id}")
        return True

    async def shutdown(self) -> None:
        await self.registry.shutdown()
