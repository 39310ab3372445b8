"""Like API routes"""
from typing import Dict

from fastapi import APIRouter, Depends
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.services import like_service

router = APIRouter(prefix="/api/v1/likes", tags=["likes"])


def _toggle_response(result: Dict, label: str) -> ApiResponse:
    if result["is_liked"]:
        return ApiResponse(201, result, f"{label} liked successfully")
    return ApiResponse(200, result, f"{label} unliked successfully")


@router.post("/toggle/v/{video_id}")
def toggle_video_like(
    video_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    result = like_service.toggle_like(db, current_user["_id"], "video", to_object_id(video_id, "video id"))
    return _toggle_response(result, "Video")


@router.post("/toggle/c/{comment_id}")
def toggle_comment_like(
    comment_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    result = like_service.toggle_like(db, current_user["_id"], "comment", to_object_id(comment_id, "comment id"))
    return _toggle_response(result, "Comment")


@router.post("/toggle/t/{tweet_id}")
def toggle_tweet_like(
    tweet_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    result = like_service.toggle_like(db, current_user["_id"], "tweet", to_object_id(tweet_id, "tweet id"))
    return _toggle_response(result, "Tweet")


@router.get("/videos")
def get_liked_videos(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    videos = like_service.get_liked_videos(db, current_user["_id"])
    return ApiResponse(200, videos, "Liked videos fetched successfully")
