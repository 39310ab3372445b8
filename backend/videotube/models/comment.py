"""Comment model"""
from bson import ObjectId

from videotube.models.base import Document


class Comment(Document):
    """Comments on videos"""

    content: str
    video: ObjectId
    owner: ObjectId
