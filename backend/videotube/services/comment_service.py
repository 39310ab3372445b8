"""Comments on videos"""
import logging
from typing import Dict, List

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from videotube.core.errors import ApiError
from videotube.db.helpers import (
    attach_owners, find_owned, get_visible_video, pagination_stages, stamped
)
from videotube.models import Comment

logger = logging.getLogger(__name__)


def list_comments(db: Database, video_id: ObjectId, viewer_id: ObjectId,
                  page: int = 1, limit: int = 10) -> List[Dict]:
    """Comments on a video, newest first, with each author's profile

    Raises:
        ApiError: 404 when the video does not exist, is another user's unpublished video,
            or has no comments on this page
    """
    get_visible_video(db, video_id, viewer_id)

    pipeline = [
        {"$match": {"video": video_id}},
        {"$sort": {"created_at": DESCENDING, "_id": DESCENDING}},
        *pagination_stages(page, limit),
    ]
    comments = list(db.comments.aggregate(pipeline))
    if not comments:
        raise ApiError(404, "Comments not found")
    return attach_owners(db, comments)


def add_comment(db: Database, video_id: ObjectId, user_id: ObjectId, content: str) -> Dict:
    get_visible_video(db, video_id, user_id)

    comment = Comment(content=content, video=video_id, owner=user_id)
    result = db.comments.insert_one(comment.to_document())
    logger.info(f"Comment {result.inserted_id} added to video {video_id} by user {user_id}")
    return db.comments.find_one({"_id": result.inserted_id})


def update_comment(db: Database, comment_id: ObjectId, user_id: ObjectId, content: str) -> Dict:
    find_owned(db, "comments", comment_id, user_id, "Comment", "update")
    return db.comments.find_one_and_update(
        {"_id": comment_id},
        {"$set": stamped({"content": content})},
        return_document=ReturnDocument.AFTER
    )


def delete_comment(db: Database, comment_id: ObjectId, user_id: ObjectId) -> Dict:
    comment = find_owned(db, "comments", comment_id, user_id, "Comment", "delete")
    db.comments.delete_one({"_id": comment_id})
    db.likes.delete_many({"target_type": "comment", "target": comment_id})
    logger.info(f"Comment {comment_id} deleted by user {user_id}")
    return comment
