from marshmallow import Schema, fields


class LikeOutSchema(Schema):
    id = fields.String()
    liked_by_id = fields.String(data_key="likedBy")
    video_id = fields.String(data_key="video", allow_none=True)
    comment_id = fields.String(data_key="comment", allow_none=True)
    tweet_id = fields.String(data_key="tweet", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
