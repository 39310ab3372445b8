"""Channel dashboard API routes"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.mongo import get_db
from videotube.schemas.video import ChannelVideoSortField, SortType
from videotube.services import dashboard_service

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/stats")
def get_channel_stats(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    """Views, subscribers, videos and likes for the caller's channel"""
    stats = dashboard_service.get_channel_stats(db, current_user["_id"])
    return ApiResponse(200, stats, "Stats fetched successfully")


@router.get("/videos")
def get_channel_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    query: Optional[str] = None,
    sort_by: ChannelVideoSortField = "created_at",
    sort_type: SortType = "desc",
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """All of the caller's videos, published or not"""
    videos = dashboard_service.get_channel_videos(
        db, current_user["_id"], page, limit, query, sort_by, sort_type
    )
    return ApiResponse(200, videos, "Videos fetched successfully")
