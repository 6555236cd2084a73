"""
Router for video generation endpoints.
Handles job submission, status polling, cancellation and the template catalog.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from auth import get_current_user_id
from dependencies import get_generation_service
from schemas import GenerateVideoRequest, JobResponse, StatusResponse, TemplateResponse
from services import GenerationService


# Create the router
router = APIRouter(prefix="/api/generate", tags=["generation"])


@router.post("/video", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_video(
    request: GenerateVideoRequest,
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """
    Creates the video record, starts its generation job in the background
    and immediately returns the job ID.
    """
    try:
        job_id = await service.start_video_generation(
            request.template_id,
            request.product_data.model_dump(),
            request.settings,
            user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Failed to create video record: {e}")
        raise HTTPException(status_code=500, detail="Failed to start the video generation job.")

    return {"job_id": job_id, "status": "processing"}


@router.get("/templates", response_model=List[TemplateResponse])
async def get_templates(
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    return service.get_available_templates()


@router.get("/status/{job_id}", response_model=StatusResponse)
async def get_generation_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """
    Checks the status of a job. Jobs owned by other users get the same 404
    as unknown jobs.
    """
    job = await service.get_generation_status(job_id, user_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found.")
    return job.to_dict()


@router.post("/status/{job_id}/cancel", response_model=StatusResponse)
async def cancel_generation(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service),
):
    """
    Asks a running job to stop; its advancer wakes and marks it `failed`. Refused with 409
    once the job has finished or started saving its video.
    """
    try:
        job = await service.cancel_generation(job_id, user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found.")
    return job.to_dict()
