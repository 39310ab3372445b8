"""Full-text search API routes"""
from typing import Optional

from fastapi import APIRouter, Query

from videotube.core.errors import ApiResponse
from videotube.services.search.search_service import search_content

router = APIRouter(prefix="/api/v1/search", tags=["search"])


@router.get("/s")
def search(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100)
):
    """Search tweets and published videos"""
    results = search_content(q, page, limit)
    return ApiResponse(200, results, "Search results fetched successfully")
