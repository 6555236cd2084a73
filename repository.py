"""
Persistence helpers for video records.

Each method opens its own short-lived session, so the store can be called
from worker threads while the event loop keeps serving requests.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from database import SessionLocal
from models import Video


class VideoStore:
    """Create, look up and update durable `Video` records."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def create_record(self, fields: Dict[str, Any]) -> str:
        """Insert a new video and return its identifier."""
        db = self.session_factory()
        try:
            video = Video(**fields)
            db.add(video)
            db.commit()
            db.refresh(video)
            logging.debug(f"Video {video.id} created for user {video.user_id}")
            return video.id
        except SQLAlchemyError as e:
            db.rollback()
            logging.error(f"Failed to create video record: {e}")
            raise
        finally:
            db.close()

    def find_record_by_id(self, video_id: str) -> Optional[Video]:
        db = self.session_factory()
        try:
            return db.get(Video, video_id)
        finally:
            db.close()

    def find_record_by_id_and_owner(self, video_id: str, owner_id: str) -> Optional[Video]:
        """Return the video only if it belongs to `owner_id`."""
        db = self.session_factory()
        try:
            return (
                db.query(Video)
                .filter(Video.id == video_id, Video.user_id == owner_id)
                .first()
            )
        finally:
            db.close()

    def find_records_by_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Video], int]:
        """
        Return one page of a user's videos, newest first, and the total number
        of matches. `search` is a case-insensitive substring of the title.
        """
        db = self.session_factory()
        try:
            query = db.query(Video).filter(Video.user_id == owner_id)
            if status is not None:
                query = query.filter(Video.status == status)
            if search:
                query = query.filter(func.lower(Video.title).contains(search.lower(), autoescape=True))
            total = query.count()
            videos = (
                query.order_by(Video.created_at.desc(), Video.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return videos, total
        finally:
            db.close()

    def delete_record_by_id_and_owner(self, video_id: str, owner_id: str) -> bool:
        """Delete the video if it belongs to `owner_id`. False when nothing matched."""
        db = self.session_factory()
        try:
            deleted = (
                db.query(Video)
                .filter(Video.id == video_id, Video.user_id == owner_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            if deleted:
                logging.info(f"Video {video_id} deleted by user {owner_id}")
            return deleted > 0
        except SQLAlchemyError as e:
            db.rollback()
            logging.error(f"Failed to delete video {video_id}: {e}")
            raise
        finally:
            db.close()

    def update_record_by_id(self, video_id: str, fields: Dict[str, Any]) -> Optional[Video]:
        """
        Apply `fields` to the video and return the updated record.
        Returns None when no such video exists.
        """
        unknown = [key for key in fields if not hasattr(Video, key)]
        if unknown:
            raise ValueError(f"Unknown video fields: {', '.join(sorted(unknown))}")

        db = self.session_factory()
        try:
            video = db.get(Video, video_id)
            if video is None:
                logging.warning(f"Video {video_id} update skipped: no such record")
                return None
            for key, value in fields.items():
                setattr(video, key, value)
            video.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(video)
            return video
        except SQLAlchemyError as e:
            db.rollback()
            logging.error(f"Failed to update video {video_id}: {e}")
            raise
        finally:
            db.close()
