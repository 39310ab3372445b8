"""Document models package - one model per MongoDB collection"""
from videotube.models.base import Document
from videotube.models.user import User
from videotube.models.video import Video
from videotube.models.comment import Comment
from videotube.models.like import Like
from videotube.models.playlist import Playlist
from videotube.models.subscription import Subscription
from videotube.models.tweet import Tweet

# Export all for convenience
__all__ = [
    "Document", "User", "Video", "Comment", "Like",
    "Playlist", "Subscription", "Tweet"
]
