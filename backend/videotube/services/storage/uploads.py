"""Staging of multipart uploads and media probing"""
import asyncio
import logging
import subprocess
import uuid
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import UploadFile

from videotube.core.config import settings
from videotube.core.errors import ApiError

media_logger = logging.getLogger("media")

CHUNK_SIZE = 1024 * 1024  # 1MB chunks

# kind -> (content-type prefix, size limit setting)
UPLOAD_KINDS = {
    "video": ("video/", "MAX_VIDEO_SIZE"),
    "image": ("image/", "MAX_IMAGE_SIZE"),
}


def cleanup_staged_file(path: Optional[Path]) -> None:
    """Remove a staged file, ignoring files that are already gone"""
    if path is None:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        media_logger.warning(f"Could not remove staged file {path}: {e}")


async def save_upload(file: "UploadFile", kind: str, field: str = "file") -> Path:
    """Stream a multipart upload to UPLOAD_DIR, enforcing type and size limits

    Args:
        file: FastAPI UploadFile object
        kind: "video" or "image"
        field: Form field name, used in error messages

    Returns:
        Path of the staged file

    Raises:
        ApiError: 400 for a missing file or wrong content type, 413 when too large
    """
    if file is None or not file.filename:
        raise ApiError(400, f"{field} is required")

    prefix, limit_setting = UPLOAD_KINDS[kind]
    max_size = getattr(settings, limit_setting)
    content_type = file.content_type or ""
    if not content_type.startswith(prefix):
        raise ApiError(400, f"Invalid {field} content type, expected {prefix}*")

    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    suffix = Path(file.filename).suffix.lower()
    path = settings.UPLOAD_DIR / f"{uuid.uuid4().hex}{suffix}"
    file_size = 0
    start_time = asyncio.get_event_loop().time()

    try:
        with open(path, "wb") as f:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break

                file_size += len(chunk)
                # Validate size while streaming, before the whole file is on disk
                if file_size > max_size:
                    max_mb = max_size / (1024 * 1024)
                    raise ApiError(413, f"{field} is too large. Maximum size is {max_mb:.0f} MB")

                f.write(chunk)
    except BaseException:
        cleanup_staged_file(path)
        raise

    elapsed = asyncio.get_event_loop().time() - start_time
    media_logger.info(
        f"Staged {field} {file.filename} as {path.name} "
        f"({file_size / (1024 * 1024):.2f} MB in {elapsed:.1f}s)"
    )
    return path


def get_video_duration(video_path: Path) -> float:
    """Get video duration in seconds using ffprobe

    Args:
        video_path: Path to video file (local file path)

    Returns:
        Duration in seconds as float

    Raises:
        ApiError: 400 if the file cannot be analyzed, 500 if ffprobe is unavailable
    """
    cmd = [
        'ffprobe',
        '-v', 'error',
        '-show_entries', 'format=duration',
        '-of', 'default=noprint_wrappers=1:nokey=1',
        str(video_path)
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=30.0)
    except FileNotFoundError:
        media_logger.error("ffprobe not found. Install ffmpeg to measure video duration.")
        raise ApiError(500, "Video processing is unavailable")
    except subprocess.TimeoutExpired:
        raise ApiError(400, "Timed out while analyzing video")

    if result.returncode != 0:
        media_logger.warning(f"ffprobe failed for {video_path}: {result.stderr.strip()}")
        raise ApiError(400, "Could not read video file")

    try:
        duration = float(result.stdout.strip())
    except ValueError:
        raise ApiError(400, "Could not read video duration")

    if duration <= 0:
        raise ApiError(400, f"Invalid video duration: {duration}")
    return duration
