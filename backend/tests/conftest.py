"""Shared pytest fixtures for test suite"""
import os
import sys
from pathlib import Path
from typing import Dict, Generator
from unittest.mock import MagicMock, Mock, patch

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-token-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-token-secret")
os.environ.setdefault("SEARCH_SYNC_ENABLED", "false")
os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "")

import fakeredis
import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from videotube.core.config import settings
from videotube.core.security import create_access_token, hash_password
from videotube.db import mongo as mongo_module
from videotube.db import redis as redis_module
from videotube.db.mongo import init_db
from videotube.main import app
from videotube.models import Comment, Tweet, User, Video
from videotube.services.search import client as search_client_module
from videotube.services.storage import media_service as media_service_module

TEST_PASSWORD = "TestPassword123!"

# A 1x1 PNG, enough to pass content-type checks
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00"
    b"\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture(scope="function")
def db():
    """Fresh in-memory MongoDB (mongomock) for each test"""
    client = mongomock.MongoClient()
    with patch.object(mongo_module, "_client", client):
        database = client[settings.MONGODB_DB_NAME]
        init_db(database)
        yield database


@pytest.fixture(scope="function")
def mock_redis():
    """Mock Redis client using fakeredis"""
    fake_redis = fakeredis.FakeRedis(decode_responses=True)
    with patch.object(redis_module, "_client", fake_redis):
        yield fake_redis


@pytest.fixture(scope="function")
def media_storage():
    """Mock media CDN: uploads consume the staged file and return predictable urls"""
    storage = Mock()
    counter = {"n": 0}

    def upload_file(file_path, folder, content_type=None):
        counter["n"] += 1
        Path(file_path).unlink(missing_ok=True)
        key = f"{folder}/file-{counter['n']}{Path(file_path).suffix}"
        return {"url": f"https://cdn.test/{key}", "public_id": key}

    storage.upload_file = Mock(side_effect=upload_file)
    storage.delete_file = Mock(return_value=True)
    with patch.object(media_service_module, "_media_storage", storage):
        yield storage


@pytest.fixture(scope="function")
def search_client():
    """Mock search cluster client"""
    es = MagicMock()
    es.ping.return_value = True
    es.search.return_value = {"hits": {"total": {"value": 0}, "hits": []}}
    with patch.object(search_client_module, "_client", es):
        yield es


@pytest.fixture(scope="function")
def upload_dir(tmp_path):
    """Stage uploads in a per-test temporary directory"""
    staging = tmp_path / "uploads"
    with patch.object(settings, "UPLOAD_DIR", staging):
        yield staging


@pytest.fixture(scope="function")
def mock_ffprobe():
    """Avoid calling ffprobe: every video is 42.5 seconds long"""
    with patch("videotube.services.video_service.get_video_duration", return_value=42.5) as probe:
        yield probe


@pytest.fixture(scope="function")
def client(db, mock_redis, media_storage, search_client, upload_dir) -> Generator[TestClient, None, None]:
    """FastAPI test client with mongomock, fakeredis and mocked CDN/search"""
    # Disable OpenTelemetry and the database ping in tests
    with patch("videotube.main.initialize_otel", return_value=False):
        with patch("videotube.main.ping", return_value=True):
            with TestClient(app) as test_client:
                yield test_client


def create_user(db, username: str, email: str = None, full_name: str = None,
                password: str = TEST_PASSWORD) -> Dict:
    """Insert a user directly and return the stored document"""
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        full_name=full_name or username.title(),
        password=hash_password(password),
        avatar=f"https://cdn.test/avatars/{username}.png",
        avatar_id=f"avatars/{username}.png",
    )
    result = db.users.insert_one(user.to_document())
    return db.users.find_one({"_id": result.inserted_id})


def create_video(db, owner_id: ObjectId, title: str = "Test video", is_published: bool = True,
                 views: int = 0, description: str = "A video for tests") -> Dict:
    video = Video(
        video_file="https://cdn.test/videos/v.mp4",
        video_file_id="videos/v.mp4",
        thumbnail="https://cdn.test/thumbnails/t.png",
        thumbnail_id="thumbnails/t.png",
        title=title,
        description=description,
        duration=10.0,
        views=views,
        is_published=is_published,
        owner=owner_id,
    )
    result = db.videos.insert_one(video.to_document())
    return db.videos.find_one({"_id": result.inserted_id})


def create_comment(db, video_id: ObjectId, owner_id: ObjectId, content: str = "Nice video") -> Dict:
    result = db.comments.insert_one(Comment(content=content, video=video_id, owner=owner_id).to_document())
    return db.comments.find_one({"_id": result.inserted_id})


def create_tweet(db, owner_id: ObjectId, content: str = "Hello world") -> Dict:
    result = db.tweets.insert_one(Tweet(content=content, owner=owner_id).to_document())
    return db.tweets.find_one({"_id": result.inserted_id})


def auth_headers(user: Dict) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture(scope="function")
def test_user(db) -> Dict:
    return create_user(db, "alice", full_name="Alice Liddell")


@pytest.fixture(scope="function")
def test_user_2(db) -> Dict:
    """Second user for ownership tests"""
    return create_user(db, "bob", full_name="Bob Builder")


@pytest.fixture(scope="function")
def headers(test_user) -> Dict[str, str]:
    return auth_headers(test_user)


@pytest.fixture(scope="function")
def headers_2(test_user_2) -> Dict[str, str]:
    return auth_headers(test_user_2)
