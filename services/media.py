"""
Media host (blob store) access.

``MediaStore`` is the contract the blueprints depend on; ``CloudinaryStore``
talks to Cloudinary. Uploaded files are first written to UPLOAD_FOLDER and
removed again whether the upload succeeds or fails.
"""
from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class MediaStoreError(Exception):
    """The media host rejected or failed an operation."""


@dataclass(frozen=True)
class MediaAsset:
    public_id: str
    url: str
    duration: Optional[float] = None


class MediaStore:
    def upload(self, local_path: str) -> MediaAsset:
        raise NotImplementedError

    def delete(self, public_id: Optional[str]) -> bool:
        """Remove an asset. Absent ids are not an error: returns False."""
        raise NotImplementedError


class CloudinaryStore(MediaStore):
    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str],
                 folder: str = "StreamSpot"):
        self.folder = folder
        self._configured = bool(cloud_name and api_key and api_secret)
        if self._configured:
            cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CloudinaryStore":
        return cls(
            cloud_name=config.get("CLOUDINARY_CLOUD_NAME"),
            api_key=config.get("CLOUDINARY_API_KEY"),
            api_secret=config.get("CLOUDINARY_API_SECRET"),
            folder=config.get("CLOUDINARY_FOLDER", "StreamSpot"),
        )

    def _ensure_configured(self):
        if not self._configured:
            raise MediaStoreError("Media host credentials are not configured")

    def upload(self, local_path: str) -> MediaAsset:
        self._ensure_configured()
        try:
            response = cloudinary.uploader.upload(local_path, resource_type="auto", folder=self.folder)
        except CloudinaryError as exc:
            logger.error("Upload of %s to media host failed: %s", local_path, exc)
            raise MediaStoreError("Upload to media host failed") from exc
        return MediaAsset(
            public_id=response["public_id"],
            url=response.get("secure_url") or response["url"],
            duration=response.get("duration"),
        )

    def delete(self, public_id: Optional[str]) -> bool:
        if not public_id:
            return False
        self._ensure_configured()
        # videos live under a different resource type than images
        for resource_type in ("image", "video"):
            try:
                result = cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
            except CloudinaryError as exc:
                logger.error("Deleting %s from media host failed: %s", public_id, exc)
                raise MediaStoreError("Delete on media host failed") from exc
            outcome = (result or {}).get("result")
            if outcome == "ok":
                return True
            if outcome != "not found":
                raise MediaStoreError(f"Unexpected delete result for {public_id}: {outcome}")
        logger.info("Media asset %s already absent", public_id)
        return False


def save_temp_upload(file: FileStorage, folder: str) -> str:
    os.makedirs(folder, exist_ok=True)
    name = secure_filename(file.filename or "") or "upload"
    path = os.path.join(folder, f"{uuid.uuid4().hex}-{name}")
    file.save(path)
    return path


def upload_file(store: MediaStore, file: Optional[FileStorage], folder: str) -> Optional[MediaAsset]:
    """Spool an incoming file to disk, push it to the media host, always clean up."""
    if file is None or not file.filename:
        return None
    path = save_temp_upload(file, folder)
    try:
        return store.upload(path)
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
