"""
Composite read views.

Every function here is a fixed aggregation pipeline producing one response
shape. Nothing is cached; each call reflects the edge state at read time.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_

from models.comment import Comment
from models.like import Like
from models.playlist import Playlist
from models.subscription import Subscription
from models.tweet import Tweet
from models.user import User
from models.video import Video
from models.schemas.comment import CommentOutSchema
from models.schemas.dashboard import ChannelStatsSchema, PageSchema
from models.schemas.playlist import PlaylistOutSchema
from models.schemas.tweet import TweetOutSchema
from models.schemas.user import ChannelProfileSchema, UserCardSchema
from models.schemas.video import VideoOutSchema
from services.aggregation import ASC, Count, Pipeline, Sum
from utils.errors import NotFound, ValidationError

# Sorting allowlists: API field -> model attribute
VIDEO_SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "views",
    "duration": "duration",
}
PLAYLIST_SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
}
COMMENT_SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

user_card_schema = UserCardSchema()
channel_profile_schema = ChannelProfileSchema()
video_out_schema = VideoOutSchema()
comment_out_schema = CommentOutSchema()
tweet_out_schema = TweetOutSchema()
playlist_out_schema = PlaylistOutSchema()
channel_stats_schema = ChannelStatsSchema()
page_schema = PageSchema()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def with_owner(pipeline: Pipeline) -> Pipeline:
    """Join ``owner_id`` to its user card and fold it to a single object."""
    return (
        pipeline
        .lookup(User, "owner_id", "id", "owner", Pipeline().project(user_card_schema))
        .first("owner")
    )


def with_likes(pipeline: Pipeline, foreign_field: str, viewer_id: Optional[str]) -> Pipeline:
    return (
        pipeline
        .lookup(Like, "id", foreign_field, "likes")
        .size("likes", "likes_count")
        .add_fields(is_liked=lambda row: any(like["liked_by_id"] == viewer_id for like in row["likes"]))
    )


def video_card() -> Pipeline:
    """Sub-pipeline shaping joined videos: owner folded, public fields only."""
    return with_owner(Pipeline()).project(video_out_schema)


# -- pagination --------------------------------------------------------------

def paginate(session, base: Pipeline, sort: Tuple[str, int], page: int, limit: int,
             shape: Optional[Pipeline] = None) -> Dict[str, Any]:
    """
    Run ``base`` (match stages) sorted, skipped and limited to one page, then
    ``shape`` over that page only.
    """
    total = base.count(session)
    field, direction = sort
    pipeline = base.copy().sort(field, direction).skip((page - 1) * limit).limit(limit)
    if shape is not None:
        pipeline.stages.extend(shape.stages)
    docs = pipeline.run(session)

    total_pages = math.ceil(total / limit) or 1
    has_prev = page > 1
    has_next = page < total_pages
    return page_schema.dump({
        "docs": docs,
        "total_docs": total,
        "limit": limit,
        "page": page,
        "total_pages": total_pages,
        "paging_counter": (page - 1) * limit + 1,
        "has_prev_page": has_prev,
        "has_next_page": has_next,
        "prev_page": page - 1 if has_prev else None,
        "next_page": page + 1 if has_next else None,
    })


def owner_videos(owner_id: str, viewer_id: Optional[str], query: Optional[str] = None) -> Pipeline:
    """Videos of one owner, optionally searched by title/description.

    Other viewers only see published videos.
    """
    clauses = []
    term = (query or "").strip()
    if term:
        like = f"%{_escape_like(term)}%"
        clauses.append(or_(Video.title.ilike(like, escape="\\"), Video.description.ilike(like, escape="\\")))
    pipeline = Pipeline(Video).match(*clauses, owner_id=owner_id)
    if viewer_id != owner_id:
        pipeline.match(is_published=True)
    return pipeline


def video_list_shape(viewer_id: Optional[str]) -> Pipeline:
    return with_likes(with_owner(Pipeline()), "video_id", viewer_id).project(video_out_schema)


def video_comments(video_id: str) -> Pipeline:
    return Pipeline(Comment).match(video_id=video_id)


def comment_list_shape(viewer_id: Optional[str]) -> Pipeline:
    return with_likes(with_owner(Pipeline()), "comment_id", viewer_id).project(comment_out_schema)


def user_playlists(owner_id: str) -> Pipeline:
    return Pipeline(Playlist).match(owner_id=owner_id)


def playlist_list_shape() -> Pipeline:
    return (
        Pipeline()
        .add_fields(total_videos=lambda row: len(row.get("videos") or []))
        .project(playlist_out_schema)
    )


# -- single-document views ---------------------------------------------------

def channel_profile(session, username: Optional[str], viewer_id: Optional[str]) -> Dict[str, Any]:
    """Channel page: user fields, subscriber counts and whether the viewer subscribes."""
    if not username or not username.strip():
        raise ValidationError("username is missing")

    rows = (
        Pipeline(User)
        .match(username=username.strip().lower())
        .lookup(Subscription, "id", "channel_id", "subscribers")
        .lookup(Subscription, "id", "subscriber_id", "subscribed_to")
        .size("subscribers", "subscribers_count")
        .size("subscribed_to", "subscribed_to_count")
        .add_fields(
            is_subscribed=lambda row: any(s["subscriber_id"] == viewer_id for s in row["subscribers"])
        )
        .project(channel_profile_schema)
        .run(session)
    )
    if not rows:
        raise NotFound("Channel does not exist")
    return rows[0]


def video_detail(session, video_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
    rows = (
        with_likes(with_owner(Pipeline(Video).match(id=video_id)), "video_id", viewer_id)
        .project(video_out_schema)
        .run(session)
    )
    if not rows:
        raise NotFound("Video not found")
    return rows[0]


def liked_videos(session, viewer_id: str) -> Dict[str, Any]:
    """Videos the viewer liked, oldest like first, each with its owner folded.

    Another channel's unpublished videos are left out.
    """
    pipeline = (
        Pipeline(Like)
        .match(Like.video_id.is_not(None), liked_by_id=viewer_id)
        .sort("created_at", ASC)
        .lookup(Video, "video_id", "id", "video")
        .first("video")
        .match(video=lambda video: video is not None and (video["is_published"] or video["owner_id"] == viewer_id))
        .replace_root("video")
    )
    pipeline.stages.extend(video_card().stages)
    videos = pipeline.run(session)
    return {"videos": videos, "videosCount": len(videos)}


def channel_stats(session, owner_id: str) -> Dict[str, Any]:
    """Totals for a channel; a channel with no videos reports zeros."""
    rows = (
        Pipeline(Video)
        .match(owner_id=owner_id)
        .lookup(Like, "id", "video_id", "likes")
        .size("likes", "likes_count")
        .group(
            total_views=Sum("views"),
            total_videos=Count(),
            total_likes=Sum("likes_count"),
        )
        .add_fields(channel_id=lambda row: owner_id)
        .lookup(Subscription, "channel_id", "channel_id", "subscribers")
        .size("subscribers", "total_subscribers")
        .project(channel_stats_schema)
        .run(session)
    )
    return rows[0]


def watch_history(session, user_id: str) -> List[Dict[str, Any]]:
    """Watched videos in history order (most recent last), duplicates kept."""
    rows = (
        Pipeline(User)
        .match(id=user_id)
        .lookup(Video, "watch_history", "id", "watch_history", video_card())
        .project(["watch_history"])
        .run(session)
    )
    if not rows:
        raise NotFound("User not found")
    return rows[0]["watch_history"]


def channel_subscribers(session, channel_id: str) -> List[Dict[str, Any]]:
    return (
        Pipeline(Subscription)
        .match(channel_id=channel_id)
        .lookup(User, "subscriber_id", "id", "subscriber", Pipeline().project(user_card_schema))
        .first("subscriber")
        .replace_root("subscriber")
        .run(session)
    )


def subscribed_channels(session, subscriber_id: str) -> List[Dict[str, Any]]:
    return (
        Pipeline(Subscription)
        .match(subscriber_id=subscriber_id)
        .lookup(User, "channel_id", "id", "channel", Pipeline().project(user_card_schema))
        .first("channel")
        .replace_root("channel")
        .run(session)
    )


def user_tweets(session, owner_id: str, viewer_id: Optional[str]) -> List[Dict[str, Any]]:
    return (
        with_likes(with_owner(Pipeline(Tweet).match(owner_id=owner_id).sort("created_at", ASC)),
                   "tweet_id", viewer_id)
        .project(tweet_out_schema)
        .run(session)
    )


def playlist_detail(session, playlist_id: str) -> Dict[str, Any]:
    rows = (
        with_owner(
            Pipeline(Playlist)
            .match(id=playlist_id)
            .lookup(Video, "videos", "id", "videos", video_card())
        )
        .add_fields(
            total_videos=lambda row: len(row["videos"]),
            total_views=lambda row: sum(v.get("views") or 0 for v in row["videos"]),
        )
        .project(playlist_out_schema)
        .run(session)
    )
    if not rows:
        raise NotFound("Playlist not found")
    return rows[0]
