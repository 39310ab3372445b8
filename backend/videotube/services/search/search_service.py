"""Full-text search over tweets and videos"""
import logging
from typing import Any, Dict, List

from opensearchpy import TransportError

from videotube.core.errors import ApiError
from videotube.core.metrics import search_queries_counter
from videotube.services.search.client import get_search_client
from videotube.services.search.index import TWEETS_INDEX, VIDEOS_INDEX

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ["content^2", "title^3", "description"]

HIT_TYPES = {VIDEOS_INDEX: "video", TWEETS_INDEX: "tweet"}


def build_search_query(query: str, page: int, limit: int) -> Dict[str, Any]:
    """Request body for a multi_match across both indexes"""
    return {
        "query": {
            "bool": {
                "must": [
                    {
                        "multi_match": {
                            "query": query,
                            "fields": SEARCH_FIELDS,
                        }
                    }
                ],
                # Tweets have no is_published field, so only exclude explicit drafts
                "must_not": [
                    {"term": {"is_published": False}}
                ],
            }
        },
        "highlight": {
            "fields": {
                "content": {},
                "title": {},
                "description": {},
            }
        },
        "from": (page - 1) * limit,
        "size": limit,
    }


def search_content(query: str, page: int = 1, limit: int = 10) -> List[Dict[str, Any]]:
    """Search tweets and videos

    Raises:
        ApiError: 400 for a blank query, 404 when nothing matches, 503 when search is unavailable
    """
    query = (query or "").strip()
    if not query:
        search_queries_counter.labels(status="invalid").inc()
        raise ApiError(400, "Search query is required")

    try:
        response = get_search_client().search(
            index=[TWEETS_INDEX, VIDEOS_INDEX],
            body=build_search_query(query, page, limit),
            ignore_unavailable=True,
        )
    except TransportError as e:
        search_queries_counter.labels(status="error").inc()
        logger.error(f"Search failed for query '{query}': {e}", exc_info=True)
        raise ApiError(503, "Search is temporarily unavailable")

    hits = [
        {
            "id": hit["_id"],
            "type": HIT_TYPES.get(hit["_index"], hit["_index"]),
            "score": hit.get("_score"),
            "source": hit.get("_source", {}),
            "highlight": hit.get("highlight", {}),
        }
        for hit in response["hits"]["hits"]
    ]

    if not hits:
        search_queries_counter.labels(status="empty").inc()
        raise ApiError(404, "Search results not found")

    search_queries_counter.labels(status="success").inc()
    return hits
