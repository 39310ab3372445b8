"""Tweet model"""
from bson import ObjectId

from videotube.models.base import Document


class Tweet(Document):
    """Short text posts"""

    content: str
    owner: ObjectId
