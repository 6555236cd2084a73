"""
Router for the durable video records of the current user.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user_id
from dependencies import get_generation_service
from models import VideoStatus
from schemas import Pagination, VideoListResponse, VideoResponse
from services import GenerationService


router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.get("/", response_model=VideoListResponse)
async def list_videos(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[VideoStatus] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=200),
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """Lists the caller's videos, newest first. `search` matches the title."""
    videos, total = await service.list_videos(
        user_id, status.value if status else None, search, page, limit
    )
    return VideoListResponse(
        videos=[VideoResponse.model_validate(video) for video in videos],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    video = await service.get_video(video_id, user_id)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found.")
    return video


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """Deletes one of the caller's videos and stops any job still producing it."""
    if not await service.delete_video(video_id, user_id):
        raise HTTPException(status_code=404, detail="Video not found.")
    return {"message": "Video deleted."}
