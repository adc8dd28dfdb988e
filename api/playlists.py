from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy.orm.attributes import flag_modified

from models import storage
from models.playlist import Playlist
from models.schemas.playlist import PlaylistCreateSchema
from models.user import User
from services import views
from utils.decorators import jwt_required
from utils.errors import ValidationError
from utils.pagination import parse_pagination, parse_sort

from .helpers import get_or_404, get_owned, get_visible_video, request_payload
from .responses import api_response

bp = Blueprint("playlists", __name__)

playlist_create_schema = PlaylistCreateSchema()
playlist_update_schema = PlaylistCreateSchema(partial=True)


@bp.post("")
@jwt_required()
def create_playlist(identity):
    """
    Create an empty playlist
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            description: { type: string }
    responses:
      201:
        description: Created
    """
    data = playlist_create_schema.load(request_payload())
    playlist = Playlist(name=data["name"], description=data["description"], videos=[], owner_id=identity.id)
    playlist.save()
    return api_response(201, views.playlist_detail(storage.get_session(), playlist.id),
                        "Playlist created successfully")


@bp.get("/user/<user_id>")
@jwt_required()
def get_user_playlists(user_id: str, identity):
    """
    A user's playlists (paginated)
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 5 }
      - { in: query, name: sortBy, type: string, enum: [createdAt, updatedAt, name] }
      - { in: query, name: sortType, type: string, enum: ["1", "-1", asc, desc] }
    responses:
      200:
        description: A page of playlists
      404:
        description: User not found
    """
    get_or_404(User, user_id, "User")
    page, limit = parse_pagination(request.args)
    sort = parse_sort(request.args, views.PLAYLIST_SORT_FIELDS)

    result = views.paginate(
        storage.get_session(),
        views.user_playlists(user_id),
        sort, page, limit,
        views.playlist_list_shape(),
    )
    return api_response(200, result, "Playlists fetched successfully")


@bp.get("/<playlist_id>")
@jwt_required()
def get_playlist(playlist_id: str, identity):
    """
    A playlist with its videos and totals
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    parameters:
      - { in: path, name: playlist_id, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: Playlist not found
    """
    playlist = views.playlist_detail(storage.get_session(), playlist_id)
    return api_response(200, playlist, "Playlist fetched successfully")


@bp.patch("/<playlist_id>")
@jwt_required()
def update_playlist(playlist_id: str, identity):
    """
    Rename or re-describe a playlist (owner only)
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: playlist_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            description: { type: string }
    responses:
      200:
        description: Updated
      403:
        description: Not the owner
      404:
        description: Playlist not found
    """
    playlist = get_owned(Playlist, playlist_id, identity, "Playlist")
    data = playlist_update_schema.load(request_payload())
    if not data:
        raise ValidationError("name or description is required")

    for key, value in data.items():
        setattr(playlist, key, value)
    playlist.save()
    return api_response(200, views.playlist_detail(storage.get_session(), playlist.id),
                        "Playlist updated successfully")


@bp.delete("/<playlist_id>")
@jwt_required()
def delete_playlist(playlist_id: str, identity):
    """
    Delete a playlist (owner only)
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    parameters:
      - { in: path, name: playlist_id, type: string, required: true }
    responses:
      200:
        description: Deleted
      403:
        description: Not the owner
      404:
        description: Playlist not found
    """
    playlist = get_owned(Playlist, playlist_id, identity, "Playlist")
    storage.delete(playlist)
    storage.save()
    return api_response(200, {}, "Playlist deleted successfully")


@bp.patch("/add/<video_id>/<playlist_id>")
@jwt_required()
def add_video_to_playlist(video_id: str, playlist_id: str, identity):
    """
    Add a video to a playlist; adding it twice is a no-op (owner only)
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
      - { in: path, name: playlist_id, type: string, required: true }
    responses:
      200:
        description: Updated playlist
      403:
        description: Not the owner
      404:
        description: Playlist or video not found
    """
    playlist = get_owned(Playlist, playlist_id, identity, "Playlist")
    video = get_visible_video(video_id, identity)

    if video.id not in (playlist.videos or []):
        playlist.videos = list(playlist.videos or [])
        playlist.videos.append(video.id)
        flag_modified(playlist, "videos")
        playlist.save()
    return api_response(200, views.playlist_detail(storage.get_session(), playlist.id),
                        "Video added to playlist")


@bp.patch("/remove/<video_id>/<playlist_id>")
@jwt_required()
def remove_video_from_playlist(video_id: str, playlist_id: str, identity):
    """
    Remove a video from a playlist (owner only)
    ---
    tags:
      - Playlists
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
      - { in: path, name: playlist_id, type: string, required: true }
    responses:
      200:
        description: Updated playlist
      403:
        description: Not the owner
      404:
        description: Playlist not found
    """
    playlist = get_owned(Playlist, playlist_id, identity, "Playlist")
    if video_id in (playlist.videos or []):
        playlist.videos = [vid for vid in playlist.videos if vid != video_id]
        flag_modified(playlist, "videos")
        playlist.save()
    return api_response(200, views.playlist_detail(storage.get_session(), playlist.id),
                        "Video removed from playlist")
