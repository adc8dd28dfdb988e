from marshmallow import Schema, fields

from models.schemas.common import OwnedOutSchema, TrimmedString, not_blank


class CommentCreateSchema(Schema):
    content = TrimmedString(required=True, validate=not_blank)


class CommentOutSchema(OwnedOutSchema):
    content = fields.String()
    video_id = fields.String(data_key="video")
    likes_count = fields.Integer(data_key="likesCount")
    is_liked = fields.Boolean(data_key="isLiked")
