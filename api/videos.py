from __future__ import annotations

import logging

from flask import Blueprint, request
from sqlalchemy import String, cast, or_
from sqlalchemy.orm.attributes import flag_modified

from models import storage
from models.comment import Comment
from models.like import Like
from models.playlist import Playlist
from models.repositories import user_repo
from models.schemas.video import VideoCreateSchema, VideoUpdateSchema
from models.video import Video
from services import views
from services.media import MediaStoreError
from utils.decorators import jwt_required
from utils.pagination import parse_pagination, parse_sort

from .extensions import media_store
from .helpers import discard_asset, get_owned, get_visible_video, request_payload, upload_from_request
from .responses import api_response

logger = logging.getLogger(__name__)

bp = Blueprint("videos", __name__)

video_create_schema = VideoCreateSchema()
video_update_schema = VideoUpdateSchema()


@bp.get("")
@jwt_required()
def list_videos(identity):
    """
    List a channel's videos (search, sort, paginate)
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - { in: query, name: userId, type: string, description: "defaults to the caller" }
      - { in: query, name: query, type: string, description: "matches title or description" }
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 5 }
      - { in: query, name: sortBy, type: string, enum: [createdAt, updatedAt, title, views, duration] }
      - { in: query, name: sortType, type: string, enum: ["1", "-1", asc, desc] }
    responses:
      200:
        description: A page of videos
      400:
        description: Invalid pagination or sort parameters
    """
    page, limit = parse_pagination(request.args)
    sort = parse_sort(request.args, views.VIDEO_SORT_FIELDS)
    owner_id = request.args.get("userId") or identity.id

    result = views.paginate(
        storage.get_session(),
        views.owner_videos(owner_id, identity.id, request.args.get("query")),
        sort, page, limit,
        views.video_list_shape(identity.id),
    )
    return api_response(200, result, "Videos fetched successfully")


@bp.post("")
@jwt_required()
def publish_video(identity):
    """
    Upload and publish a video
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: title, type: string, required: true }
      - { in: formData, name: description, type: string, required: true }
      - { in: formData, name: isPublished, type: boolean, default: true }
      - { in: formData, name: videoFile, type: file, required: true }
      - { in: formData, name: thumbnail, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error or missing videoFile
    """
    data = video_create_schema.load(request_payload())

    store = media_store()
    video_file = upload_from_request(store, "videoFile", required=True)
    try:
        thumbnail = upload_from_request(store, "thumbnail")
    except MediaStoreError:
        discard_asset(store, video_file.public_id)
        raise

    video = Video(
        owner_id=identity.id,
        title=data["title"],
        description=data["description"],
        is_published=data["is_published"],
        video_file_url=video_file.url,
        video_file_public_id=video_file.public_id,
        thumbnail_url=thumbnail.url if thumbnail else None,
        thumbnail_public_id=thumbnail.public_id if thumbnail else None,
        duration=video_file.duration or 0,
        views=0,
    )
    storage.new(video)
    storage.save()
    logger.info("User %s published video %s", identity.id, video.id)

    detail = views.video_detail(storage.get_session(), video.id, identity.id)
    return api_response(201, detail, "Video uploaded successfully")


@bp.get("/<video_id>")
@jwt_required()
def get_video(video_id: str, identity):
    """
    Fetch a video; counts a view and records it in the caller's watch history
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: Video not found
    """
    session = storage.get_session()
    video = get_visible_video(video_id, identity)

    # the views UPDATE runs first so the history append below is serialized behind it
    session.query(Video).filter(Video.id == video.id).update(
        {Video.views: Video.views + 1}, synchronize_session="fetch"
    )
    user_repo.append_watch_history(session, identity.id, video.id)

    return api_response(200, views.video_detail(session, video.id, identity.id), "Video fetched successfully")


@bp.patch("/<video_id>")
@jwt_required()
def update_video(video_id: str, identity):
    """
    Update title, description and optionally the thumbnail (owner only)
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: path, name: video_id, type: string, required: true }
      - { in: formData, name: title, type: string, required: true }
      - { in: formData, name: description, type: string, required: true }
      - { in: formData, name: thumbnail, type: file, required: false }
    responses:
      200:
        description: Updated
      403:
        description: Not the owner
      404:
        description: Video not found
    """
    video = get_owned(Video, video_id, identity, "Video")
    data = video_update_schema.load(request_payload())

    store = media_store()
    thumbnail = upload_from_request(store, "thumbnail")
    previous_thumbnail = video.thumbnail_public_id

    video.title = data["title"]
    video.description = data["description"]
    if thumbnail is not None:
        video.thumbnail_url = thumbnail.url
        video.thumbnail_public_id = thumbnail.public_id
    video.save()
    if thumbnail is not None:
        discard_asset(store, previous_thumbnail)

    detail = views.video_detail(storage.get_session(), video.id, identity.id)
    return api_response(200, detail, "Video updated successfully")


@bp.delete("/<video_id>")
@jwt_required()
def delete_video(video_id: str, identity):
    """
    Delete a video with its comments, likes and playlist entries (owner only)
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
    responses:
      200:
        description: Deleted
      403:
        description: Not the owner
      404:
        description: Video not found
    """
    video = get_owned(Video, video_id, identity, "Video")
    session = storage.get_session()

    comment_ids = [row.id for row in session.query(Comment.id).filter(Comment.video_id == video.id)]
    like_filter = Like.video_id == video.id
    if comment_ids:
        like_filter = or_(like_filter, Like.comment_id.in_(comment_ids))
    session.query(Like).filter(like_filter).delete(synchronize_session=False)
    session.query(Comment).filter(Comment.video_id == video.id).delete(synchronize_session=False)

    # candidates only; the JSON text match is confirmed on the decoded list
    for playlist in session.query(Playlist).filter(cast(Playlist.videos, String).like(f"%{video.id}%")):
        if video.id in (playlist.videos or []):
            playlist.videos = [vid for vid in playlist.videos if vid != video.id]
            flag_modified(playlist, "videos")

    blobs = (video.video_file_public_id, video.thumbnail_public_id)
    storage.delete(video)
    storage.save()
    logger.info("User %s deleted video %s", identity.id, video_id)

    store = media_store()
    for public_id in blobs:
        discard_asset(store, public_id)
    return api_response(200, {}, "Video deleted successfully")


@bp.patch("/toggle/publish/<video_id>")
@jwt_required()
def toggle_publish_status(video_id: str, identity):
    """
    Flip a video between published and unpublished (owner only)
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
    responses:
      200:
        description: Toggled
      403:
        description: Not the owner
      404:
        description: Video not found
    """
    video = get_owned(Video, video_id, identity, "Video")
    video.is_published = not video.is_published
    video.save()

    detail = views.video_detail(storage.get_session(), video.id, identity.id)
    return api_response(200, detail, "Publish status toggled successfully")
