"""Playlists: ordered, duplicate-free collections of videos"""
import logging
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from videotube.db.helpers import attach_owners, find_owned, get_or_404, get_visible_video, stamped
from videotube.models import Playlist

logger = logging.getLogger(__name__)


def create_playlist(db: Database, user_id: ObjectId, name: str, description: str) -> Dict:
    playlist = Playlist(name=name, description=description, owner=user_id)
    result = db.playlists.insert_one(playlist.to_document())
    logger.info(f"Playlist {result.inserted_id} created by user {user_id}")
    return db.playlists.find_one({"_id": result.inserted_id})


def get_user_playlists(db: Database, user_id: ObjectId) -> List[Dict]:
    """A user's playlists, newest first (possibly empty)"""
    get_or_404(db, "users", user_id, "User", {"_id": 1})
    return list(db.playlists.find({"owner": user_id}).sort([("created_at", DESCENDING), ("_id", DESCENDING)]))


def get_playlist(db: Database, playlist_id: ObjectId, viewer_id: Optional[ObjectId] = None) -> Dict:
    """Playlist with its videos populated in playlist order

    Unpublished videos are only included for their owner.
    """
    playlist = get_or_404(db, "playlists", playlist_id, "Playlist")
    video_ids = playlist.get("videos") or []

    videos = {}
    if video_ids:
        videos = {
            video["_id"]: video
            for video in db.videos.find({"_id": {"$in": video_ids}})
            if video.get("is_published", True) or video.get("owner") == viewer_id
        }
    playlist["videos"] = attach_owners(db, [videos[vid] for vid in video_ids if vid in videos])
    playlist["total_videos"] = len(playlist["videos"])
    return attach_owners(db, [playlist])[0]


def update_playlist(db: Database, playlist_id: ObjectId, user_id: ObjectId,
                    name: str, description: str) -> Dict:
    find_owned(db, "playlists", playlist_id, user_id, "Playlist")
    return db.playlists.find_one_and_update(
        {"_id": playlist_id},
        {"$set": stamped({"name": name, "description": description})},
        return_document=ReturnDocument.AFTER
    )


def delete_playlist(db: Database, playlist_id: ObjectId, user_id: ObjectId) -> Dict:
    playlist = find_owned(db, "playlists", playlist_id, user_id, "Playlist", "delete")
    db.playlists.delete_one({"_id": playlist_id})
    logger.info(f"Playlist {playlist_id} deleted by user {user_id}")
    return playlist


def add_video_to_playlist(db: Database, playlist_id: ObjectId, video_id: ObjectId,
                          user_id: ObjectId) -> Dict:
    """Append a video once; adding it again leaves the playlist unchanged"""
    find_owned(db, "playlists", playlist_id, user_id, "Playlist")
    get_visible_video(db, video_id, user_id)
    return db.playlists.find_one_and_update(
        {"_id": playlist_id},
        {"$addToSet": {"videos": video_id}, "$set": stamped({})},
        return_document=ReturnDocument.AFTER
    )


def remove_video_from_playlist(db: Database, playlist_id: ObjectId, video_id: ObjectId,
                               user_id: ObjectId) -> Dict:
    find_owned(db, "playlists", playlist_id, user_id, "Playlist")
    return db.playlists.find_one_and_update(
        {"_id": playlist_id},
        {"$pull": {"videos": video_id}, "$set": stamped({})},
        return_document=ReturnDocument.AFTER
    )
