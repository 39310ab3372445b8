"""Channel dashboard: aggregate stats and the owner's video list"""
import logging
from typing import Dict, List, Optional

import redis
from bson import ObjectId
from pymongo.database import Database

from videotube.core.errors import ApiError
from videotube.db.helpers import pagination_stages
from videotube.db.redis import get_cached_channel_stats, set_cached_channel_stats
from videotube.services.video_service import sort_stage, title_filter

logger = logging.getLogger(__name__)


def _count_likes(db: Database, target_type: str, target_ids: List[ObjectId]) -> int:
    if not target_ids:
        return 0
    return db.likes.count_documents({"target_type": target_type, "target": {"$in": target_ids}})


def compute_channel_stats(db: Database, user_id: ObjectId) -> Dict[str, int]:
    """Count videos, views, subscribers and likes received by a channel"""
    totals = list(db.videos.aggregate([
        {"$match": {"owner": user_id}},
        {"$group": {
            "_id": None,
            "total_videos": {"$sum": 1},
            "total_views": {"$sum": "$views"},
        }},
    ]))
    total_videos = totals[0]["total_videos"] if totals else 0
    total_views = totals[0]["total_views"] if totals else 0

    video_ids = [v["_id"] for v in db.videos.find({"owner": user_id}, {"_id": 1})]
    comment_ids = [c["_id"] for c in db.comments.find({"owner": user_id}, {"_id": 1})]
    tweet_ids = [t["_id"] for t in db.tweets.find({"owner": user_id}, {"_id": 1})]

    video_likes = _count_likes(db, "video", video_ids)
    comment_likes = _count_likes(db, "comment", comment_ids)
    tweet_likes = _count_likes(db, "tweet", tweet_ids)

    return {
        "total_videos": total_videos,
        "total_views": total_views,
        "total_subscribers": db.subscriptions.count_documents({"channel": user_id}),
        "total_video_likes": video_likes,
        "total_comment_likes": comment_likes,
        "total_tweet_likes": tweet_likes,
        "total_likes": video_likes + comment_likes + tweet_likes,
    }


def get_channel_stats(db: Database, user_id: ObjectId) -> Dict[str, int]:
    """Channel stats, served from the Redis cache when fresh"""
    cache_key = str(user_id)
    try:
        cached = get_cached_channel_stats(cache_key)
        if cached is not None:
            return cached
    except redis.RedisError as e:
        logger.warning(f"Stats cache unavailable for channel {user_id}: {e}")

    stats = compute_channel_stats(db, user_id)

    try:
        set_cached_channel_stats(cache_key, stats)
    except redis.RedisError as e:
        logger.warning(f"Failed to cache stats for channel {user_id}: {e}")
    return stats


def get_channel_videos(
    db: Database,
    user_id: ObjectId,
    page: int = 1,
    limit: int = 10,
    query: Optional[str] = None,
    sort_by: str = "created_at",
    sort_type: str = "desc"
) -> List[Dict]:
    """All of the caller's videos, published or not

    Raises:
        ApiError: 404 when the page is empty
    """
    match = {"owner": user_id, **title_filter(query)}
    pipeline = [
        {"$match": match},
        sort_stage(sort_by, sort_type),
        *pagination_stages(page, limit),
    ]
    videos = list(db.videos.aggregate(pipeline))
    if not videos:
        raise ApiError(404, "Videos are not found")
    return videos
