"""Media storage, upload staging and ffprobe tests"""
import asyncio
import io
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from fastapi import UploadFile
from starlette.datastructures import Headers

from videotube.core.config import settings
from videotube.core.errors import ApiError
from videotube.services.storage import media_service
from videotube.services.storage.media_service import MediaStorage, build_object_key
from videotube.services.storage.uploads import get_video_duration, save_upload


@pytest.fixture
def storage_settings():
    with patch.multiple(
        settings,
        STORAGE_ACCESS_KEY_ID="key",
        STORAGE_SECRET_ACCESS_KEY="secret",
        STORAGE_BUCKET_NAME="media",
        STORAGE_ENDPOINT_URL="https://s3.test",
        STORAGE_PUBLIC_URL="https://cdn.test/",
    ):
        yield settings


@pytest.fixture
def s3_client(storage_settings):
    client = MagicMock()
    with patch.object(media_service.boto3, "client", return_value=client):
        yield client


def upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.high
class TestMediaStorage:
    """Test MediaStorage"""

    def test_requires_credentials(self):
        with patch.object(settings, "STORAGE_ACCESS_KEY_ID", ""):
            with pytest.raises(ValueError):
                MediaStorage()

    def test_object_keys_are_unique_and_keep_extension(self):
        first = build_object_key("videos", "Holiday.MP4")
        second = build_object_key("videos", "Holiday.MP4")
        assert first.startswith("videos/")
        assert first.endswith(".mp4")
        assert first != second

    def test_public_url_encodes_segments(self, s3_client):
        storage = MediaStorage()
        assert storage.public_url("avatars/my file.png") == "https://cdn.test/avatars/my%20file.png"

    def test_upload_removes_staged_file(self, s3_client, tmp_path):
        staged = tmp_path / "clip.mp4"
        staged.write_bytes(b"video")

        result = MediaStorage().upload_file(staged, "videos")

        assert result["public_id"].startswith("videos/")
        assert result["url"] == f"https://cdn.test/{result['public_id']}"
        assert not staged.exists()
        args, kwargs = s3_client.upload_file.call_args
        assert args[1] == "media"
        assert kwargs["ExtraArgs"]["ContentType"] == "video/mp4"

    def test_failed_upload_still_removes_staged_file(self, s3_client, tmp_path):
        staged = tmp_path / "avatar.png"
        staged.write_bytes(b"img")
        s3_client.upload_file.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )

        with pytest.raises(RuntimeError):
            MediaStorage().upload_file(staged, "avatars")
        assert not staged.exists()

    def test_delete_missing_object_is_success(self, s3_client):
        s3_client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "DeleteObject"
        )
        assert MediaStorage().delete_file("videos/gone.mp4") is True

    def test_delete_failure(self, s3_client):
        s3_client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject"
        )
        assert MediaStorage().delete_file("videos/x.mp4") is False
        assert MediaStorage().delete_file("") is False


@pytest.mark.high
class TestSaveUpload:
    """Test save_upload"""

    def test_stages_file(self, upload_dir):
        path = asyncio.run(save_upload(upload(b"frames", "clip.MOV", "video/quicktime"), "video", "video_file"))
        assert path.parent == upload_dir
        assert path.suffix == ".mov"
        assert path.read_bytes() == b"frames"

    def test_missing_file(self, upload_dir):
        with pytest.raises(ApiError) as exc_info:
            asyncio.run(save_upload(None, "image", "avatar"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "avatar is required"

    def test_wrong_content_type(self, upload_dir):
        with pytest.raises(ApiError) as exc_info:
            asyncio.run(save_upload(upload(b"text", "notes.txt", "text/plain"), "image", "avatar"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid avatar content type, expected image/*"

    def test_too_large(self, upload_dir):
        with patch.object(settings, "MAX_IMAGE_SIZE", 4):
            with pytest.raises(ApiError) as exc_info:
                asyncio.run(save_upload(upload(b"too many bytes", "a.png", "image/png"), "image", "avatar"))
        assert exc_info.value.status_code == 413
        assert list(upload_dir.iterdir()) == []


@pytest.mark.medium
class TestVideoDuration:
    """Test get_video_duration"""

    def probe(self, stdout="", returncode=0, stderr=""):
        return subprocess.CompletedProcess(args=["ffprobe"], returncode=returncode, stdout=stdout, stderr=stderr)

    def test_reads_duration(self, tmp_path):
        with patch("videotube.services.storage.uploads.subprocess.run", return_value=self.probe("12.480000\n")):
            assert get_video_duration(tmp_path / "v.mp4") == pytest.approx(12.48)

    def test_unreadable_file(self, tmp_path):
        with patch("videotube.services.storage.uploads.subprocess.run",
                   return_value=self.probe(returncode=1, stderr="Invalid data")):
            with pytest.raises(ApiError) as exc_info:
                get_video_duration(tmp_path / "v.mp4")
        assert exc_info.value.status_code == 400

    def test_not_a_number(self, tmp_path):
        with patch("videotube.services.storage.uploads.subprocess.run", return_value=self.probe("N/A")):
            with pytest.raises(ApiError) as exc_info:
                get_video_duration(tmp_path / "v.mp4")
        assert exc_info.value.status_code == 400

    def test_ffprobe_missing(self, tmp_path):
        with patch("videotube.services.storage.uploads.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ApiError) as exc_info:
                get_video_duration(tmp_path / "v.mp4")
        assert exc_info.value.status_code == 500
