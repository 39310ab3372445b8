"""Video listing, publishing, viewing and management"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from videotube.core.errors import ApiError
from videotube.db.helpers import (
    attach_owners, find_owned, get_visible_video, pagination_stages, stamped
)
from videotube.db.redis import invalidate_channel_stats
from videotube.models import Video
from videotube.services.storage.media_service import get_media_storage
from videotube.services.storage.uploads import cleanup_staged_file, get_video_duration

logger = logging.getLogger(__name__)
media_logger = logging.getLogger("media")

VIDEO_FOLDER = "videos"
THUMBNAIL_FOLDER = "thumbnails"


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ApiError(400, f"{label} cannot be empty")
    return value.strip()


def _delete_media(*public_ids: Optional[str]) -> None:
    storage = get_media_storage()
    for public_id in public_ids:
        if public_id and not storage.delete_file(public_id):
            media_logger.warning(f"Could not delete media {public_id} from CDN")


def title_filter(query: Optional[str]) -> Dict:
    """Case-insensitive title match for a free-text query (regex metacharacters escaped)"""
    if not query or not query.strip():
        return {}
    return {"title": {"$regex": re.escape(query.strip()), "$options": "i"}}


def sort_stage(sort_by: str, sort_type: str) -> Dict:
    direction = ASCENDING if sort_type == "asc" else DESCENDING
    # _id keeps the order stable between pages
    return {"$sort": {sort_by: direction, "_id": direction}}


def list_videos(
    db: Database,
    viewer_id: Optional[ObjectId],
    page: int = 1,
    limit: int = 10,
    query: Optional[str] = None,
    sort_by: str = "created_at",
    sort_type: str = "desc",
    user_id: Optional[ObjectId] = None
) -> List[Dict]:
    """Published videos (plus the viewer's own unpublished ones when listing their channel)

    Raises:
        ApiError: 404 when the page is empty
    """
    match: Dict = {}
    if user_id is not None:
        match["owner"] = user_id
    if user_id is None or user_id != viewer_id:
        match["is_published"] = True
    match.update(title_filter(query))

    pipeline = [
        {"$match": match},
        sort_stage(sort_by, sort_type),
        *pagination_stages(page, limit),
    ]
    videos = list(db.videos.aggregate(pipeline))
    if not videos:
        raise ApiError(404, "Videos are not found")
    return attach_owners(db, videos)


def publish_video(
    db: Database,
    owner_id: ObjectId,
    title: str,
    description: str,
    video_path: Optional[Path],
    thumbnail_path: Optional[Path]
) -> Dict:
    """Measure, upload and record a new video

    Raises:
        ApiError: 400 for blank fields, missing files or an unreadable video
    """
    try:
        title = _require_text(title, "Title")
        description = _require_text(description, "Description")
        if video_path is None:
            raise ApiError(400, "Video file is required")
        if thumbnail_path is None:
            raise ApiError(400, "Thumbnail is required")
        duration = get_video_duration(video_path)
    except Exception:
        cleanup_staged_file(video_path)
        cleanup_staged_file(thumbnail_path)
        raise

    storage = get_media_storage()
    try:
        video_file = storage.upload_file(video_path, VIDEO_FOLDER)
    except RuntimeError:
        cleanup_staged_file(thumbnail_path)
        raise ApiError(500, "Failed to upload video file")

    try:
        thumbnail = storage.upload_file(thumbnail_path, THUMBNAIL_FOLDER)
    except RuntimeError:
        _delete_media(video_file["public_id"])
        raise ApiError(500, "Failed to upload thumbnail")

    video = Video(
        video_file=video_file["url"],
        video_file_id=video_file["public_id"],
        thumbnail=thumbnail["url"],
        thumbnail_id=thumbnail["public_id"],
        title=title,
        description=description,
        duration=duration,
        owner=owner_id,
    )

    try:
        result = db.videos.insert_one(video.to_document())
    except PyMongoError as e:
        logger.error(f"Failed to save video '{title}' for user {owner_id}, removing media: {e}")
        _delete_media(video_file["public_id"], thumbnail["public_id"])
        raise

    invalidate_channel_stats(str(owner_id))
    logger.info(f"Video published: {result.inserted_id} by user {owner_id} ({duration:.1f}s)")
    return db.videos.find_one({"_id": result.inserted_id})


def get_video(db: Database, video_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> Dict:
    """Fetch a video and record the view

    Unpublished videos are only visible to their owner. A view increments
    the counter and moves the video to the end of the viewer's watch history.
    """
    get_visible_video(db, video_id, viewer_id)

    video = db.videos.find_one_and_update(
        {"_id": video_id},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER
    )
    if video is None:
        raise ApiError(404, "Video not found")

    if viewer_id is not None:
        # Two updates: $pull and $push cannot target the same field at once
        db.users.update_one({"_id": viewer_id}, {"$pull": {"watch_history": video_id}})
        db.users.update_one({"_id": viewer_id}, {"$push": {"watch_history": video_id}})

    return attach_owners(db, [video])[0]


def update_video(
    db: Database,
    video_id: ObjectId,
    user_id: ObjectId,
    title: str,
    description: str,
    thumbnail_path: Optional[Path] = None
) -> Dict:
    """Edit title/description and optionally replace the thumbnail (owner only)"""
    try:
        video = find_owned(db, "videos", video_id, user_id, "Video", "update")
        title = _require_text(title, "Title")
        description = _require_text(description, "Description")
    except Exception:
        cleanup_staged_file(thumbnail_path)
        raise

    fields = {"title": title, "description": description}
    if thumbnail_path is not None:
        try:
            thumbnail = get_media_storage().upload_file(thumbnail_path, THUMBNAIL_FOLDER)
        except RuntimeError:
            raise ApiError(500, "Failed to upload thumbnail")
        fields.update({"thumbnail": thumbnail["url"], "thumbnail_id": thumbnail["public_id"]})

    updated = db.videos.find_one_and_update(
        {"_id": video_id},
        {"$set": stamped(fields)},
        return_document=ReturnDocument.AFTER
    )

    if thumbnail_path is not None:
        _delete_media(video.get("thumbnail_id"))
    return updated


def delete_video(db: Database, video_id: ObjectId, user_id: ObjectId) -> Dict:
    """Delete a video with its comments, likes, playlist entries and media (owner only)"""
    video = find_owned(db, "videos", video_id, user_id, "Video", "delete")

    db.videos.delete_one({"_id": video_id})

    comment_ids = [c["_id"] for c in db.comments.find({"video": video_id}, {"_id": 1})]
    if comment_ids:
        db.likes.delete_many({"target_type": "comment", "target": {"$in": comment_ids}})
        db.comments.delete_many({"_id": {"$in": comment_ids}})
    db.likes.delete_many({"target_type": "video", "target": video_id})
    db.playlists.update_many({"videos": video_id}, {"$pull": {"videos": video_id}})
    db.users.update_many({"watch_history": video_id}, {"$pull": {"watch_history": video_id}})

    _delete_media(video.get("video_file_id"), video.get("thumbnail_id"))
    invalidate_channel_stats(str(user_id))

    logger.info(
        f"Video deleted: {video_id} by user {user_id} "
        f"({len(comment_ids)} comments removed)"
    )
    return video


def toggle_publish_status(db: Database, video_id: ObjectId, user_id: ObjectId) -> Dict:
    video = find_owned(db, "videos", video_id, user_id, "Video", "update")
    updated = db.videos.find_one_and_update(
        {"_id": video_id},
        {"$set": stamped({"is_published": not video.get("is_published", True)})},
        return_document=ReturnDocument.AFTER
    )
    invalidate_channel_stats(str(user_id))
    return updated
