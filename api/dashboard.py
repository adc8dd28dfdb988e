from flask import Blueprint, request

from models import storage
from services import views
from utils.decorators import jwt_required
from utils.pagination import parse_pagination, parse_sort

from .responses import api_response

bp = Blueprint("dashboard", __name__)


@bp.get("/stats")
@jwt_required()
def get_channel_stats(identity):
    """
    Totals for the caller's channel
    ---
    tags:
      - Dashboard
    security:
      - Bearer: []
    responses:
      200:
        description: "{totalViews, totalVideos, totalLikes, totalSubscribers}"
    """
    stats = views.channel_stats(storage.get_session(), identity.id)
    return api_response(200, stats, "Channel stats fetched successfully")


@bp.get("/videos")
@jwt_required()
def get_channel_videos(identity):
    """
    A channel's videos (paginated); defaults to the caller's channel
    ---
    tags:
      - Dashboard
    security:
      - Bearer: []
    parameters:
      - { in: query, name: channelId, type: string }
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 5 }
      - { in: query, name: sortBy, type: string, enum: [createdAt, updatedAt, title, views, duration] }
      - { in: query, name: sortType, type: string, enum: ["1", "-1", asc, desc] }
    responses:
      200:
        description: A page of videos
    """
    page, limit = parse_pagination(request.args)
    sort = parse_sort(request.args, views.VIDEO_SORT_FIELDS)
    channel_id = request.args.get("channelId") or identity.id

    result = views.paginate(
        storage.get_session(),
        views.owner_videos(channel_id, identity.id),
        sort, page, limit,
        views.video_list_shape(identity.id),
    )
    return api_response(200, result, "Channel videos fetched successfully")
