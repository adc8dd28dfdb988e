from marshmallow import Schema, fields

from models.schemas.common import OwnedOutSchema, TrimmedString, not_blank


class TweetCreateSchema(Schema):
    content = TrimmedString(required=True, validate=not_blank)


class TweetOutSchema(OwnedOutSchema):
    content = fields.String()
    likes_count = fields.Integer(data_key="likesCount")
    is_liked = fields.Boolean(data_key="isLiked")
