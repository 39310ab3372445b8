"""Likes on videos, comments and tweets"""
import logging
from typing import Dict, List

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from videotube.db.helpers import attach_owners, get_or_404, get_visible_video
from videotube.models import Like
from videotube.models.like import LikeTarget

logger = logging.getLogger(__name__)

# like target type -> (collection, label)
LIKE_TARGETS = {
    "video": ("videos", "Video"),
    "comment": ("comments", "Comment"),
    "tweet": ("tweets", "Tweet"),
}


def toggle_like(db: Database, user_id: ObjectId, target_type: LikeTarget, target_id: ObjectId) -> Dict:
    """Like the target, or remove the existing like

    Returns:
        {"is_liked": False} after an unlike, {"is_liked": True, "like": ...} after a like

    Raises:
        ApiError: 404 when the target does not exist, or is a video the user cannot see
    """
    collection, label = LIKE_TARGETS[target_type]
    if target_type == "video":
        get_visible_video(db, target_id, user_id)
    else:
        get_or_404(db, collection, target_id, label, {"_id": 1})

    key = {"liked_by": user_id, "target_type": target_type, "target": target_id}
    removed = db.likes.delete_one(key)
    if removed.deleted_count:
        logger.info(f"User {user_id} unliked {target_type} {target_id}")
        return {"is_liked": False}

    like = Like(**key)
    try:
        db.likes.insert_one(like.to_document())
    except DuplicateKeyError:
        # Concurrent like from the same user already landed
        logger.debug(f"Duplicate like by user {user_id} on {target_type} {target_id}")
    logger.info(f"User {user_id} liked {target_type} {target_id}")
    return {"is_liked": True, "like": db.likes.find_one(key)}


def get_liked_videos(db: Database, user_id: ObjectId) -> List[Dict]:
    """Videos the user liked, most recent like first

    Unpublished videos are skipped unless the user owns them.
    """
    pipeline = [
        {"$match": {"liked_by": user_id, "target_type": "video"}},
        {"$sort": {"created_at": DESCENDING, "_id": DESCENDING}},
        {"$lookup": {
            "from": "videos",
            "localField": "target",
            "foreignField": "_id",
            "as": "video",
        }},
        {"$unwind": "$video"},
        {"$match": {"$or": [
            {"video.is_published": True},
            {"video.owner": user_id},
        ]}},
    ]
    videos = []
    for like in db.likes.aggregate(pipeline):
        video = like["video"]
        video["liked_at"] = like["created_at"]
        videos.append(video)
    return attach_owners(db, videos)
