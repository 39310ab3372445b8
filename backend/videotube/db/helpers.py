"""Database helper functions shared by the services"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.database import Database

from videotube.core.errors import ApiError

logger = logging.getLogger(__name__)

# Never returned to clients
SAFE_USER_PROJECTION = {"password": 0, "refresh_token": 0}

# Embedded wherever another user's profile is shown
PUBLIC_USER_PROJECTION = {"username": 1, "full_name": 1, "avatar": 1}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value))


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    """Parse a path/body id, raising a 400 ApiError when it is malformed"""
    if isinstance(value, ObjectId):
        return value
    if not is_valid_object_id(value):
        raise ApiError(400, f"Invalid {label}")
    return ObjectId(value)


def stamped(update_fields: Dict[str, Any]) -> Dict[str, Any]:
    """Add updated_at to a $set payload"""
    return {**update_fields, "updated_at": utcnow()}


def pagination_stages(page: int, limit: int) -> List[Dict[str, int]]:
    return [{"$skip": (page - 1) * limit}, {"$limit": limit}]


def get_public_users(db: Database, user_ids: Iterable[ObjectId]) -> Dict[ObjectId, Dict]:
    """Fetch public profiles for a set of user ids, keyed by id"""
    ids = list({uid for uid in user_ids if uid is not None})
    if not ids:
        return {}
    cursor = db.users.find({"_id": {"$in": ids}}, PUBLIC_USER_PROJECTION)
    return {user["_id"]: user for user in cursor}


def attach_owners(db: Database, docs: List[Dict], field: str = "owner") -> List[Dict]:
    """Replace the user id stored in `field` with that user's public profile"""
    profiles = get_public_users(db, (doc.get(field) for doc in docs))
    for doc in docs:
        doc[field] = profiles.get(doc.get(field))
    return docs


def find_owned(db: Database, collection: str, doc_id: ObjectId, user_id: ObjectId,
               label: str, action: str = "modify") -> Dict:
    """Load a document and check the caller owns it: 404 when missing, 403 when not the owner"""
    doc = db[collection].find_one({"_id": doc_id})
    if not doc:
        raise ApiError(404, f"{label} not found")
    if doc.get("owner") != user_id:
        raise ApiError(403, f"You are not allowed to {action} this {label.lower()}")
    return doc


def get_or_404(db: Database, collection: str, doc_id: ObjectId, label: str,
               projection: Optional[Dict] = None) -> Dict:
    doc = db[collection].find_one({"_id": doc_id}, projection)
    if not doc:
        raise ApiError(404, f"{label} not found")
    return doc


def get_visible_video(db: Database, video_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> Dict:
    """Load a video the viewer may see: unpublished videos exist only for their owner"""
    video = get_or_404(db, "videos", video_id, "Video")
    if not video.get("is_published", True) and video.get("owner") != viewer_id:
        raise ApiError(404, "Video not found")
    return video
