"""Playlist API routes"""
from typing import Dict

from fastapi import APIRouter, Depends
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.schemas.content import PlaylistRequest
from videotube.services import playlist_service

router = APIRouter(prefix="/api/v1/playlist", tags=["playlists"])


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_playlist(
    request_data: PlaylistRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.create_playlist(
        db, current_user["_id"], request_data.name, request_data.description
    )
    return ApiResponse(201, playlist, "Playlist created successfully")


@router.get("/user/{user_id}")
def get_user_playlists(
    user_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlists = playlist_service.get_user_playlists(db, to_object_id(user_id, "user id"))
    return ApiResponse(200, playlists, "User playlists fetched successfully")


@router.get("/{playlist_id}")
def get_playlist(
    playlist_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.get_playlist(db, to_object_id(playlist_id, "playlist id"), current_user["_id"])
    return ApiResponse(200, playlist, "Playlist fetched successfully")


@router.patch("/add/{video_id}/{playlist_id}")
def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.add_video_to_playlist(
        db,
        to_object_id(playlist_id, "playlist id"),
        to_object_id(video_id, "video id"),
        current_user["_id"]
    )
    return ApiResponse(200, playlist, "Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}")
def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.remove_video_from_playlist(
        db,
        to_object_id(playlist_id, "playlist id"),
        to_object_id(video_id, "video id"),
        current_user["_id"]
    )
    return ApiResponse(200, playlist, "Video removed from playlist successfully")


@router.patch("/{playlist_id}")
def update_playlist(
    playlist_id: str,
    request_data: PlaylistRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.update_playlist(
        db,
        to_object_id(playlist_id, "playlist id"),
        current_user["_id"],
        request_data.name,
        request_data.description
    )
    return ApiResponse(200, playlist, "Playlist updated successfully")


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    playlist = playlist_service.delete_playlist(db, to_object_id(playlist_id, "playlist id"), current_user["_id"])
    return ApiResponse(200, playlist, "Playlist deleted successfully")
