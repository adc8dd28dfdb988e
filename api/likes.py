from flask import Blueprint

from models import storage
from models.comment import Comment
from models.like import Like
from models.schemas.like import LikeOutSchema
from models.tweet import Tweet
from services import views
from utils.decorators import jwt_required

from .helpers import get_or_404, get_visible_video
from .responses import api_response

bp = Blueprint("likes", __name__)

like_out_schema = LikeOutSchema()


def _toggle_like(target_field: str, target_id: str, identity):
    """Like the target if the caller has not yet, otherwise remove the caller's like."""
    session = storage.get_session()
    existing = (
        session.query(Like)
        .filter(Like.liked_by_id == identity.id, getattr(Like, target_field) == target_id)
        .first()
    )
    if existing is not None:
        storage.delete(existing)
        storage.save()
        return api_response(200, {"action": "unliked"}, "Like removed successfully")

    like = Like(liked_by_id=identity.id, **{target_field: target_id})
    like.save()
    return api_response(200, {"action": "liked", "like": like_out_schema.dump(like)}, "Liked successfully")


@bp.post("/toggle/v/<video_id>")
@jwt_required()
def toggle_video_like(video_id: str, identity):
    """
    Toggle the caller's like on a video
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
    responses:
      200:
        description: "data.action is liked or unliked"
      404:
        description: Video not found
    """
    get_visible_video(video_id, identity)
    return _toggle_like("video_id", video_id, identity)


@bp.post("/toggle/c/<comment_id>")
@jwt_required()
def toggle_comment_like(comment_id: str, identity):
    """
    Toggle the caller's like on a comment
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    parameters:
      - { in: path, name: comment_id, type: string, required: true }
    responses:
      200:
        description: "data.action is liked or unliked"
      404:
        description: Comment not found
    """
    get_or_404(Comment, comment_id, "Comment")
    return _toggle_like("comment_id", comment_id, identity)


@bp.post("/toggle/t/<tweet_id>")
@jwt_required()
def toggle_tweet_like(tweet_id: str, identity):
    """
    Toggle the caller's like on a tweet
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tweet_id, type: string, required: true }
    responses:
      200:
        description: "data.action is liked or unliked"
      404:
        description: Tweet not found
    """
    get_or_404(Tweet, tweet_id, "Tweet")
    return _toggle_like("tweet_id", tweet_id, identity)


@bp.get("/videos")
@jwt_required()
def get_liked_videos(identity):
    """
    Videos the caller liked, oldest like first
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    responses:
      200:
        description: "{videos, videosCount}"
    """
    result = views.liked_videos(storage.get_session(), identity.id)
    return api_response(200, result, "Liked videos fetched successfully")
