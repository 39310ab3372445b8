"""Search cluster client for full-text search"""
import logging
from typing import Optional

from opensearchpy import OpenSearch

from videotube.core.config import settings

logger = logging.getLogger(__name__)

# Lazy initialization - no connection at import time
_client: Optional[OpenSearch] = None


def get_search_client() -> OpenSearch:
    """Get or create the search client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        http_auth = None
        if settings.ELASTICSEARCH_USERNAME:
            http_auth = (settings.ELASTICSEARCH_USERNAME, settings.ELASTICSEARCH_PASSWORD)
        _client = OpenSearch(
            hosts=[settings.ELASTICSEARCH_NODE],
            http_auth=http_auth,
            timeout=settings.ELASTICSEARCH_REQUEST_TIMEOUT,
        )
        logger.info(f"Search client created for {settings.ELASTICSEARCH_NODE}")
    return _client


def ping() -> bool:
    """True when the search cluster answers"""
    return bool(get_search_client().ping())


def close_search_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
