"""Pydantic schemas for comments, tweets and playlists"""
from pydantic import BaseModel

from videotube.schemas.common import NonBlankStr


class ContentRequest(BaseModel):
    """Body for creating or editing a comment or tweet"""
    content: NonBlankStr


class PlaylistRequest(BaseModel):
    name: NonBlankStr
    description: NonBlankStr
