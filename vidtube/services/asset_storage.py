"""Asset storage for avatar and cover images"""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile

from vidtube.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def discard_local_file(local_path: Optional[str]) -> None:
    """Remove a temp upload if it is still on disk"""
    if not local_path:
        return
    try:
        Path(local_path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temp file %s: %s", local_path, exc)


def save_temp_upload(upload: Optional[UploadFile]) -> Optional[str]:
    """
    Spool a multipart upload into the temp directory

    Args:
        upload: File from the request, may be None or empty

    Returns:
        Local path of the written file, or None when nothing was uploaded
    """
    if upload is None or not upload.filename:
        return None

    temp_dir = Path(settings.get_temp_dir())
    temp_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename).suffix.lower()
    target = temp_dir / f"{uuid.uuid4().hex}{suffix}"

    with open(target, "wb") as fh:
        shutil.copyfileobj(upload.file, fh)
    return str(target)


class AssetStorage:
    """
    Destination for uploaded assets.

    ``store`` consumes the local file: it is gone from the temp directory
    afterwards, whether or not the upload succeeded.
    """

    def store(self, local_path: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        raise NotImplementedError

    def remove(self, url: Optional[str]) -> bool:
        raise NotImplementedError


class LocalAssetStorage(AssetStorage):
    """Keeps assets in a media directory served by the application"""

    def __init__(self, media_dir: Optional[str] = None, base_url: Optional[str] = None):
        self.media_dir = Path(media_dir or settings.get_media_dir())
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def store(self, local_path: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Move a temp file into the media directory

        Args:
            local_path: Path written by ``save_temp_upload``

        Returns:
            (url, None) on success, (None, error message) on failure
        """
        if not local_path:
            return None, "No file provided"

        source = Path(local_path)
        if not source.is_file():
            return None, "File not found"

        suffix = source.suffix.lower()
        if suffix not in ALLOWED_IMAGE_SUFFIXES:
            discard_local_file(local_path)
            return None, f"Unsupported file type '{suffix or 'none'}'"

        name = f"{uuid.uuid4().hex}{suffix}"
        try:
            self.media_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(self.media_dir / name))
        except OSError as exc:
            logger.error("Asset upload failed for %s: %s", local_path, exc)
            discard_local_file(local_path)
            return None, "Failed to store file"

        url = f"{self.base_url}/{name}"
        logger.info("Stored asset %s", url)
        return url, None

    def remove(self, url: Optional[str]) -> bool:
        """Delete a previously stored asset by its URL"""
        if not url or not url.startswith(f"{self.base_url}/"):
            return False
        name = url[len(self.base_url) + 1:]
        if "/" in name or name in {"", ".", ".."}:
            return False
        path = self.media_dir / name
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed asset %s", url)
        return True


asset_storage = LocalAssetStorage()
