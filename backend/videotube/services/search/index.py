"""Search index definitions and write operations"""
import logging
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId
from opensearchpy import NotFoundError

from videotube.core.config import settings
from videotube.services.search.client import get_search_client

logger = logging.getLogger(__name__)

VIDEOS_INDEX = "videos"
TWEETS_INDEX = "tweets"

INDEX_MAPPINGS = {
    TWEETS_INDEX: {
        "properties": {
            "content": {"type": "text"},
            "owner": {"type": "keyword"},
        }
    },
    VIDEOS_INDEX: {
        "properties": {
            "title": {"type": "text"},
            "description": {"type": "text"},
            "owner": {"type": "keyword"},
            "is_published": {"type": "boolean"},
        }
    },
}

# Fields copied from a MongoDB document into its search document
INDEXED_FIELDS = {
    index: tuple(mapping["properties"]) for index, mapping in INDEX_MAPPINGS.items()
}


def ensure_indexes() -> None:
    """Create the tweets and videos indexes when they do not exist yet"""
    client = get_search_client()
    for index, mappings in INDEX_MAPPINGS.items():
        if client.indices.exists(index=index):
            logger.info(f"Search index '{index}' already exists")
            continue
        # 400 means another process created it first
        client.indices.create(index=index, body={"mappings": mappings}, ignore=400)
        logger.info(f"Search index '{index}' created")


def _to_search_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


def build_search_document(index: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the indexed fields of a document, in search-friendly form"""
    return {
        field: _to_search_value(fields[field])
        for field in INDEXED_FIELDS[index]
        if field in fields
    }


def changed_indexed_fields(index: str, updated_fields: Dict[str, Any],
                           removed_fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Indexed fields touched by an update (removed fields map to None)"""
    changed = build_search_document(index, updated_fields or {})
    for field in removed_fields or ():
        if field in INDEXED_FIELDS[index]:
            changed[field] = None
    return changed


def _refresh():
    return True if settings.SEARCH_REFRESH_ON_WRITE else None


def index_document(index: str, doc_id: str, document: Dict[str, Any]) -> None:
    get_search_client().index(
        index=index,
        id=doc_id,
        body=build_search_document(index, document),
        refresh=_refresh(),
    )


def update_document(index: str, doc_id: str, fields: Dict[str, Any]) -> None:
    """Partial update; creates the document when it was never indexed"""
    get_search_client().update(
        index=index,
        id=doc_id,
        body={"doc": fields, "doc_as_upsert": True},
        refresh=_refresh(),
    )


def delete_document(index: str, doc_id: str) -> bool:
    """Delete a search document. Returns False when it was not indexed."""
    try:
        get_search_client().delete(index=index, id=doc_id, refresh=_refresh())
        return True
    except NotFoundError:
        logger.debug(f"Search document {index}/{doc_id} was not indexed")
        return False
