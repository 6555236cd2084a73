# models.py

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class VideoStatus(str, Enum):
    """Durable status of a generated video."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Video(Base):
    """Durable record of a product video, created before its generation job."""

    __tablename__ = "videos"

    id = Column(String, primary_key=True, index=True, default=lambda: uuid.uuid4().hex)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    template_id = Column(String, nullable=True)
    settings = Column(JSON, nullable=False, default=dict)
    input_image_url = Column(String, nullable=True)

    status = Column(String, nullable=False, default=VideoStatus.PROCESSING.value, index=True)
    url = Column(String, nullable=True)
    thumbnail = Column(String, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    completed_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
