"""User model"""
from typing import List, Optional

from bson import ObjectId
from pydantic import Field, field_validator

from videotube.models.base import Document


class User(Document):
    """User accounts (channels)"""

    username: str
    email: str
    full_name: str
    avatar: str  # CDN url
    avatar_id: Optional[str] = None  # CDN object key
    cover_image: str = ""
    cover_image_id: Optional[str] = None
    watch_history: List[ObjectId] = Field(default_factory=list)  # most recent last
    password: str  # bcrypt hash
    refresh_token: Optional[str] = None

    @field_validator("username", "email")
    @classmethod
    def normalize_identity(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()
