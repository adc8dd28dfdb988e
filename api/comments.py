from flask import Blueprint, request

from models import storage
from models.comment import Comment
from models.like import Like
from models.schemas.comment import CommentCreateSchema, CommentOutSchema
from services import views
from utils.decorators import jwt_required
from utils.pagination import parse_pagination, parse_sort

from .helpers import get_owned, get_visible_video, request_payload
from .responses import api_response

bp = Blueprint("comments", __name__)

comment_create_schema = CommentCreateSchema()
comment_out_schema = CommentOutSchema()


@bp.get("/<video_id>")
@jwt_required()
def get_video_comments(video_id: str, identity):
    """
    Paginated comments of a video
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 5 }
      - { in: query, name: sortBy, type: string, enum: [createdAt, updatedAt] }
      - { in: query, name: sortType, type: string, enum: ["1", "-1", asc, desc] }
    responses:
      200:
        description: A page of comments
      404:
        description: Video not found
    """
    get_visible_video(video_id, identity)
    page, limit = parse_pagination(request.args)
    sort = parse_sort(request.args, views.COMMENT_SORT_FIELDS)

    result = views.paginate(
        storage.get_session(),
        views.video_comments(video_id),
        sort, page, limit,
        views.comment_list_shape(identity.id),
    )
    return api_response(200, result, "Comments fetched successfully")


@bp.post("/<video_id>")
@jwt_required()
def add_comment(video_id: str, identity):
    """
    Comment on a video
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: video_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            content: { type: string }
    responses:
      201:
        description: Created
      404:
        description: Video not found
    """
    get_visible_video(video_id, identity)
    data = comment_create_schema.load(request_payload())

    comment = Comment(content=data["content"], video_id=video_id, owner_id=identity.id)
    comment.save()
    return api_response(201, comment_out_schema.dump(comment), "Comment added successfully")


@bp.patch("/c/<comment_id>")
@jwt_required()
def update_comment(comment_id: str, identity):
    """
    Edit a comment (owner only)
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: comment_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            content: { type: string }
    responses:
      200:
        description: Updated
      403:
        description: Not the owner
      404:
        description: Comment not found
    """
    comment = get_owned(Comment, comment_id, identity, "Comment")
    data = comment_create_schema.load(request_payload())

    comment.content = data["content"]
    comment.save()
    return api_response(200, comment_out_schema.dump(comment), "Comment updated successfully")


@bp.delete("/c/<comment_id>")
@jwt_required()
def delete_comment(comment_id: str, identity):
    """
    Delete a comment and its likes (owner only)
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    parameters:
      - { in: path, name: comment_id, type: string, required: true }
    responses:
      200:
        description: Deleted
      403:
        description: Not the owner
      404:
        description: Comment not found
    """
    comment = get_owned(Comment, comment_id, identity, "Comment")
    session = storage.get_session()
    session.query(Like).filter(Like.comment_id == comment.id).delete(synchronize_session=False)
    storage.delete(comment)
    storage.save()
    return api_response(200, {}, "Comment deleted successfully")
