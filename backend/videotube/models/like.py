"""Like model"""
from typing import Literal

from bson import ObjectId

from videotube.models.base import Document

LikeTarget = Literal["video", "comment", "tweet"]


class Like(Document):
    """A user's like on a video, comment or tweet"""

    liked_by: ObjectId
    target_type: LikeTarget
    target: ObjectId
