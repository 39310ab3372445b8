"""MongoDB client management"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from videotube.core.config import settings

logger = logging.getLogger(__name__)

# Lazy initialization - no connection at import time
_client = None


def get_client() -> MongoClient:
    """Get or create the MongoDB client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        _client = MongoClient(
            settings.MONGODB_URI,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            tz_aware=True
        )
    return _client


def get_database() -> Database:
    """Get the application database"""
    return get_client()[settings.MONGODB_DB_NAME]


def get_db():
    """Dependency for FastAPI endpoints"""
    yield get_database()


def ping() -> bool:
    """Return True if the server answers a ping"""
    get_client().admin.command("ping")
    return True


def init_db(db: Database = None):
    """Initialize database (create all indexes)"""
    if db is None:
        db = get_database()

    db.users.create_index("username", unique=True)
    db.users.create_index("email", unique=True)
    db.users.create_index("full_name")

    db.videos.create_index([("owner", ASCENDING), ("created_at", DESCENDING)])
    db.videos.create_index([("is_published", ASCENDING), ("created_at", DESCENDING)])
    db.videos.create_index([("views", DESCENDING)])

    db.comments.create_index([("video", ASCENDING), ("created_at", DESCENDING)])
    db.comments.create_index("owner")

    db.likes.create_index(
        [("liked_by", ASCENDING), ("target_type", ASCENDING), ("target", ASCENDING)],
        unique=True
    )
    db.likes.create_index([("target_type", ASCENDING), ("target", ASCENDING)])

    db.playlists.create_index("owner")
    db.playlists.create_index("videos")

    db.subscriptions.create_index([("subscriber", ASCENDING), ("channel", ASCENDING)], unique=True)
    db.subscriptions.create_index("channel")

    db.tweets.create_index([("owner", ASCENDING), ("created_at", DESCENDING)])
    db.tweets.create_index([("created_at", DESCENDING)])

    logger.info(f"MongoDB indexes ensured on database '{db.name}'")


def close_db():
    """Close the MongoDB client"""
    global _client
    if _client is not None:
        _client.close()
        _client = None
