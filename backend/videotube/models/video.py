"""Video model"""
from typing import Optional

from bson import ObjectId
from pydantic import Field

from videotube.models.base import Document


class Video(Document):
    """Uploaded videos"""

    video_file: str  # CDN url
    video_file_id: Optional[str] = None  # CDN object key
    thumbnail: str
    thumbnail_id: Optional[str] = None
    title: str
    description: str
    views: int = Field(default=0, ge=0)
    duration: float = Field(default=0, ge=0)  # seconds
    is_published: bool = True
    owner: ObjectId
