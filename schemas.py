"""
Pydantic models for data validation in the product video generation backend.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class ProductData(BaseModel):
    """Product shown in the generated video."""
    name: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    images: List[HttpUrl] = Field(..., min_length=1)
    description: Optional[str] = None


class GenerateVideoRequest(BaseModel):
    """Request model for starting a video generation job."""
    template_id: str = Field(..., min_length=1)
    product_data: ProductData
    settings: Optional[Dict[str, Any]] = None


class JobResponse(BaseModel):
    """Response when submitting a background generation job."""
    job_id: str
    status: str  # e.g., "processing"


class StatusResponse(BaseModel):
    """Response for checking background job status."""
    job_id: str
    status: str  # "processing" | "completed" | "failed"
    progress: int
    video_id: Optional[str] = None
    error: Optional[str] = None


class TemplateResponse(BaseModel):
    id: str
    name: str
    description: str
    thumbnail: str
    duration: int
    settings: Dict[str, Any]


class VideoResponse(BaseModel):
    """Durable video record as returned to its owner."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    template_id: Optional[str] = None
    settings: Dict[str, Any] = {}
    status: str
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class VideoListResponse(BaseModel):
    """One page of the caller's videos."""
    videos: List[VideoResponse]
    pagination: Pagination
