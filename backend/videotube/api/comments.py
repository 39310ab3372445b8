"""Comment API routes"""
from typing import Dict

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.schemas.content import ContentRequest
from videotube.services import comment_service

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.get("/{video_id}")
def get_video_comments(
    video_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Comments on a video, newest first"""
    comments = comment_service.list_comments(
        db, to_object_id(video_id, "video id"), current_user["_id"], page, limit
    )
    return ApiResponse(200, comments, "Comments fetched successfully")


@router.post("/{video_id}", status_code=201)
def add_comment(
    video_id: str,
    request_data: ContentRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    comment = comment_service.add_comment(
        db, to_object_id(video_id, "video id"), current_user["_id"], request_data.content
    )
    return ApiResponse(201, comment, "Comment added successfully")


@router.patch("/c/{comment_id}")
def update_comment(
    comment_id: str,
    request_data: ContentRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    comment = comment_service.update_comment(
        db, to_object_id(comment_id, "comment id"), current_user["_id"], request_data.content
    )
    return ApiResponse(200, comment, "Comment updated successfully")


@router.delete("/c/{comment_id}")
def delete_comment(
    comment_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    comment = comment_service.delete_comment(db, to_object_id(comment_id, "comment id"), current_user["_id"])
    return ApiResponse(200, comment, "Comment deleted successfully")
