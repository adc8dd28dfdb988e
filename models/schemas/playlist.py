from marshmallow import Schema, fields

from models.schemas.common import OwnedOutSchema, TrimmedString, not_blank


class PlaylistCreateSchema(Schema):
    name = TrimmedString(required=True, validate=not_blank)
    description = TrimmedString(required=True, validate=not_blank)


class PlaylistOutSchema(OwnedOutSchema):
    name = fields.String()
    description = fields.String()
    # video ids, or video documents once joined
    videos = fields.Raw()
    total_videos = fields.Integer(data_key="totalVideos")
    total_views = fields.Integer(data_key="totalViews")
