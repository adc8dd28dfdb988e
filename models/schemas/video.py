from marshmallow import EXCLUDE, Schema, fields

from models.schemas.common import OwnedOutSchema, TrimmedString, get_value, media_ref, not_blank


class VideoCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    title = TrimmedString(required=True, validate=not_blank)
    description = TrimmedString(required=True, validate=not_blank)
    is_published = fields.Boolean(data_key="isPublished", load_default=True)


class VideoUpdateSchema(Schema):
    title = TrimmedString(required=True, validate=not_blank)
    description = TrimmedString(required=True, validate=not_blank)


class VideoOutSchema(OwnedOutSchema):
    title = fields.String()
    description = fields.String()
    video_file = fields.Method("get_video_file", data_key="videoFile")
    thumbnail = fields.Method("get_thumbnail")
    duration = fields.Float()
    views = fields.Integer()
    is_published = fields.Boolean(data_key="isPublished")
    likes_count = fields.Integer(data_key="likesCount")
    is_liked = fields.Boolean(data_key="isLiked")

    def get_video_file(self, obj):
        return media_ref(get_value(obj, "video_file_url"), get_value(obj, "video_file_public_id"))

    def get_thumbnail(self, obj):
        return media_ref(get_value(obj, "thumbnail_url"), get_value(obj, "thumbnail_public_id"))
