"""Video API routes"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.schemas.video import SortType, VideoSortField
from videotube.services import video_service
from videotube.services.storage.uploads import cleanup_staged_file, save_upload

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])
logger = logging.getLogger(__name__)


@router.get("")
@router.get("/", include_in_schema=False)
def list_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    query: Optional[str] = None,
    sort_by: VideoSortField = "created_at",
    sort_type: SortType = "desc",
    user_id: Optional[str] = None,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """List published videos with search, sorting and pagination"""
    videos = video_service.list_videos(
        db,
        current_user["_id"],
        page=page,
        limit=limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        user_id=to_object_id(user_id, "user id") if user_id else None
    )
    return ApiResponse(200, videos, "Videos fetched successfully")


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
async def publish_video(
    title: str = Form(""),
    description: str = Form(""),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Upload a video file and thumbnail and publish the video"""
    video_path = None
    try:
        video_path = await save_upload(video_file, "video", "video_file")
        thumbnail_path = await save_upload(thumbnail, "image", "thumbnail")
    except Exception:
        cleanup_staged_file(video_path)
        raise

    video = await run_in_threadpool(
        video_service.publish_video,
        db, current_user["_id"], title, description, video_path, thumbnail_path
    )
    return ApiResponse(201, video, "Video uploaded successfully")


@router.get("/{video_id}")
def get_video(
    video_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Get a video; counts a view and updates the caller's watch history"""
    video = video_service.get_video(db, to_object_id(video_id, "video id"), current_user["_id"])
    return ApiResponse(200, video, "Video fetched successfully")


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: str = Form(""),
    description: str = Form(""),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Update title and description, optionally replacing the thumbnail"""
    video_oid = to_object_id(video_id, "video id")
    thumbnail_path = None
    if thumbnail is not None and thumbnail.filename:
        thumbnail_path = await save_upload(thumbnail, "image", "thumbnail")

    video = await run_in_threadpool(
        video_service.update_video,
        db, video_oid, current_user["_id"], title, description, thumbnail_path
    )
    return ApiResponse(200, video, "Video updated successfully")


@router.delete("/{video_id}")
def delete_video(
    video_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    video = video_service.delete_video(db, to_object_id(video_id, "video id"), current_user["_id"])
    return ApiResponse(200, video, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}")
def toggle_publish_status(
    video_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    video = video_service.toggle_publish_status(db, to_object_id(video_id, "video id"), current_user["_id"])
    state = "published" if video["is_published"] else "unpublished"
    return ApiResponse(200, video, f"Video {state} successfully")
