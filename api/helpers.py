"""
Small request helpers shared by the blueprints.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import current_app, request

from models import storage
from models.video import Video
from services.media import MediaStore, MediaStoreError, upload_file
from utils.errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


def request_payload() -> Dict[str, Any]:
    """JSON body when sent as JSON, otherwise the submitted form fields."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def get_or_404(model, obj_id: Optional[str], label: str):
    obj = storage.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def get_visible_video(video_id: Optional[str], identity):
    """A video the caller may see: published, or their own."""
    video = storage.get(Video, video_id)
    if video is None or (not video.is_published and video.owner_id != identity.id):
        raise NotFound("Video not found")
    return video


def get_owned(model, obj_id: Optional[str], identity, label: str):
    """Load a document and make sure the caller owns it, before anything is changed."""
    obj = get_or_404(model, obj_id, label)
    if obj.owner_id != identity.id:
        logger.info("User %s denied write on %s %s", identity.id, label.lower(), obj_id)
        raise Forbidden(f"Only the owner can modify this {label.lower()}")
    return obj


def upload_from_request(store: MediaStore, field: str, required: bool = False):
    asset = upload_file(store, request.files.get(field), current_app.config["UPLOAD_FOLDER"])
    if asset is None and required:
        raise ValidationError(f"{field} file is required")
    return asset


def discard_asset(store: MediaStore, public_id: Optional[str]) -> None:
    """Delete a replaced or orphaned blob; a failure leaves it behind and is logged."""
    if not public_id:
        return
    try:
        store.delete(public_id)
    except MediaStoreError as exc:
        logger.warning("Could not delete media asset %s, left orphaned: %s", public_id, exc)
