"""Playlist model"""
from typing import List

from bson import ObjectId
from pydantic import Field

from videotube.models.base import Document


class Playlist(Document):
    """Ordered, duplicate-free lists of videos"""

    name: str
    description: str
    videos: List[ObjectId] = Field(default_factory=list)
    owner: ObjectId
