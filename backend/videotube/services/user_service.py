"""User accounts, authentication tokens and channel profiles"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from videotube.core.errors import ApiError
from videotube.core.metrics import login_attempts_counter
from videotube.core.security import (
    create_access_token, create_refresh_token, decode_token,
    hash_password, verify_password
)
from videotube.db.helpers import (
    SAFE_USER_PROJECTION, attach_owners, get_or_404, stamped
)
from videotube.models import User
from videotube.schemas.auth import RegisterRequest
from videotube.services.storage.media_service import get_media_storage
from videotube.services.storage.uploads import cleanup_staged_file

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")
media_logger = logging.getLogger("media")

AVATAR_FOLDER = "avatars"
COVER_IMAGE_FOLDER = "cover-images"


def _delete_media(*public_ids: Optional[str]) -> None:
    """Best-effort removal of CDN assets"""
    storage = get_media_storage()
    for public_id in public_ids:
        if public_id and not storage.delete_file(public_id):
            media_logger.warning(f"Could not delete media {public_id} from CDN")


def get_user_by_id(db: Database, user_id: ObjectId) -> Dict:
    return get_or_404(db, "users", user_id, "User", SAFE_USER_PROJECTION)


def register_user(
    db: Database,
    full_name: str,
    email: str,
    username: str,
    password: str,
    avatar_path: Optional[Path],
    cover_image_path: Optional[Path] = None
) -> Dict:
    """Create an account, uploading avatar and optional cover image to the CDN

    Raises:
        ApiError: 400 for blank fields or a missing avatar, 409 if username or email is taken
    """
    try:
        data = RegisterRequest(full_name=full_name, email=email, username=username, password=password)
        username = data.username.lower()
        email = str(data.email).lower()

        existing = db.users.find_one({"$or": [{"username": username}, {"email": email}]}, {"_id": 1})
        if existing:
            raise ApiError(409, "User with email or username already exists")

        if avatar_path is None:
            raise ApiError(400, "Avatar file is missing")
    except Exception:
        cleanup_staged_file(avatar_path)
        cleanup_staged_file(cover_image_path)
        raise

    storage = get_media_storage()
    try:
        avatar = storage.upload_file(avatar_path, AVATAR_FOLDER)
    except RuntimeError:
        cleanup_staged_file(cover_image_path)
        raise ApiError(500, "Failed to upload avatar")

    cover_image = None
    if cover_image_path is not None:
        try:
            cover_image = storage.upload_file(cover_image_path, COVER_IMAGE_FOLDER)
        except RuntimeError:
            _delete_media(avatar["public_id"])
            raise ApiError(500, "Failed to upload cover image")

    user = User(
        full_name=data.full_name,
        email=email,
        username=username,
        password=hash_password(data.password),
        avatar=avatar["url"],
        avatar_id=avatar["public_id"],
        cover_image=cover_image["url"] if cover_image else "",
        cover_image_id=cover_image["public_id"] if cover_image else None,
    )

    try:
        result = db.users.insert_one(user.to_document())
    except PyMongoError as e:
        logger.error(f"Failed to create user {username}, removing uploaded images: {e}")
        _delete_media(avatar["public_id"], cover_image["public_id"] if cover_image else None)
        raise

    logger.info(f"User registered: {username} (ID: {result.inserted_id})")
    return get_user_by_id(db, result.inserted_id)


def issue_tokens(db: Database, user: Dict) -> Dict[str, str]:
    """Create an access/refresh token pair and store the refresh token on the user"""
    access_token = create_access_token(user)
    refresh_token = create_refresh_token(user)
    db.users.update_one(
        {"_id": user["_id"]},
        {"$set": stamped({"refresh_token": refresh_token})}
    )
    return {"access_token": access_token, "refresh_token": refresh_token}


def login_user(db: Database, password: str, email: Optional[str] = None,
               username: Optional[str] = None) -> Dict[str, Any]:
    """Authenticate by email or username

    Returns:
        {"user", "access_token", "refresh_token"}

    Raises:
        ApiError: 404 for an unknown user, 401 for a wrong password
    """
    conditions = []
    if email:
        conditions.append({"email": email.strip().lower()})
    if username:
        conditions.append({"username": username.strip().lower()})
    if not conditions:
        raise ApiError(400, "Username or email is required")

    user = db.users.find_one({"$or": conditions})
    if not user:
        login_attempts_counter.labels(status="unknown_user").inc()
        raise ApiError(404, "User does not exist")

    if not verify_password(password, user.get("password", "")):
        login_attempts_counter.labels(status="failed").inc()
        security_logger.warning(f"Failed login for user {user['username']} (ID: {user['_id']})")
        raise ApiError(401, "Invalid user credentials")

    tokens = issue_tokens(db, user)
    login_attempts_counter.labels(status="success").inc()
    logger.info(f"User logged in: {user['username']} (ID: {user['_id']})")

    return {"user": get_user_by_id(db, user["_id"]), **tokens}


def logout_user(db: Database, user_id: ObjectId) -> None:
    db.users.update_one(
        {"_id": user_id},
        {"$set": stamped({"refresh_token": None})}
    )
    logger.info(f"User logged out: {user_id}")


def refresh_access_token(db: Database, incoming_refresh_token: Optional[str]) -> Dict[str, str]:
    """Rotate both tokens given a valid refresh token

    Raises:
        ApiError: 401 when the token is missing, invalid, expired or already rotated
    """
    if not incoming_refresh_token:
        raise ApiError(401, "Refresh token is required")

    payload = decode_token(incoming_refresh_token, "refresh")
    user = db.users.find_one({"_id": ObjectId(payload["sub"])})
    if not user:
        raise ApiError(401, "Invalid refresh token")

    if incoming_refresh_token != user.get("refresh_token"):
        security_logger.warning(f"Refresh token reuse or mismatch for user {user['_id']}")
        raise ApiError(401, "Refresh token is expired or used")

    return issue_tokens(db, user)


def change_password(db: Database, user_id: ObjectId, old_password: str, new_password: str) -> None:
    user = get_or_404(db, "users", user_id, "User", {"password": 1})
    if not verify_password(old_password, user.get("password", "")):
        raise ApiError(400, "Invalid old password")

    db.users.update_one(
        {"_id": user_id},
        {"$set": stamped({"password": hash_password(new_password)})}
    )
    security_logger.info(f"Password changed for user {user_id}")


def update_account(db: Database, user_id: ObjectId, full_name: str, email: str) -> Dict:
    """Update full name and email; 409 when the email belongs to someone else"""
    email = email.strip().lower()
    if db.users.find_one({"email": email, "_id": {"$ne": user_id}}, {"_id": 1}):
        raise ApiError(409, "Email is already in use")

    user = db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": stamped({"full_name": full_name.strip(), "email": email})},
        projection=SAFE_USER_PROJECTION,
        return_document=ReturnDocument.AFTER
    )
    if not user:
        raise ApiError(404, "User not found")
    return user


def _replace_image(db: Database, user_id: ObjectId, image_path: Path,
                   url_field: str, id_field: str, folder: str) -> Dict:
    current = db.users.find_one({"_id": user_id}, {id_field: 1})
    if not current:
        cleanup_staged_file(image_path)
        raise ApiError(404, "User not found")

    try:
        uploaded = get_media_storage().upload_file(image_path, folder)
    except RuntimeError:
        raise ApiError(500, "Something went wrong while uploading the image")

    user = db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": stamped({url_field: uploaded["url"], id_field: uploaded["public_id"]})},
        projection=SAFE_USER_PROJECTION,
        return_document=ReturnDocument.AFTER
    )
    _delete_media(current.get(id_field))
    return user


def update_avatar(db: Database, user_id: ObjectId, image_path: Path) -> Dict:
    return _replace_image(db, user_id, image_path, "avatar", "avatar_id", AVATAR_FOLDER)


def update_cover_image(db: Database, user_id: ObjectId, image_path: Path) -> Dict:
    return _replace_image(db, user_id, image_path, "cover_image", "cover_image_id", COVER_IMAGE_FOLDER)


def get_channel_profile(db: Database, username: str, viewer_id: Optional[ObjectId] = None) -> Dict:
    """Public channel profile with subscriber counts

    Raises:
        ApiError: 400 for a blank username, 404 for an unknown channel
    """
    username = (username or "").strip().lower()
    if not username:
        raise ApiError(400, "Username is required")

    pipeline = [
        {"$match": {"username": username}},
        {"$lookup": {
            "from": "subscriptions",
            "localField": "_id",
            "foreignField": "channel",
            "as": "subscribers",
        }},
        {"$lookup": {
            "from": "subscriptions",
            "localField": "_id",
            "foreignField": "subscriber",
            "as": "subscribed_to",
        }},
        {"$addFields": {
            "subscribers_count": {"$size": "$subscribers"},
            "channels_subscribed_to_count": {"$size": "$subscribed_to"},
        }},
        {"$project": {
            "full_name": 1,
            "username": 1,
            "email": 1,
            "avatar": 1,
            "cover_image": 1,
            "subscribers_count": 1,
            "channels_subscribed_to_count": 1,
            "created_at": 1,
        }},
    ]
    channels = list(db.users.aggregate(pipeline))
    if not channels:
        raise ApiError(404, "Channel does not exist")

    channel = channels[0]
    channel["is_subscribed"] = bool(viewer_id) and db.subscriptions.count_documents(
        {"channel": channel["_id"], "subscriber": viewer_id}, limit=1
    ) > 0
    return channel


def get_watch_history(db: Database, user_id: ObjectId) -> List[Dict]:
    """Videos the user watched, most recent first, each with its owner's profile"""
    user = get_or_404(db, "users", user_id, "User", {"watch_history": 1})
    history = list(reversed(user.get("watch_history") or []))
    if not history:
        return []

    videos = {video["_id"]: video for video in db.videos.find({"_id": {"$in": history}})}
    ordered = [videos[video_id] for video_id in history if video_id in videos]
    return attach_owners(db, ordered)
