from marshmallow import EXCLUDE, Schema, fields, pre_load

from models.schemas.common import TrimmedString, not_blank, validate_password


def _norm(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserRegisterSchema(Schema):
    username = TrimmedString(required=True, validate=not_blank)
    email = fields.Email(required=True)
    full_name = TrimmedString(required=True, data_key="fullName", validate=not_blank)
    password = fields.String(required=True, load_only=True, validate=validate_password)

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for key in ("username", "email"):
            if key in data:
                data[key] = _norm(data[key])
        return data


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(load_default=None)


class UserUpdateSchema(Schema):
    full_name = TrimmedString(required=True, data_key="fullName", validate=not_blank)
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        if "email" in data:
            data["email"] = _norm(data["email"])
        return data


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, data_key="oldPassword", validate=not_blank)
    new_password = fields.String(required=True, data_key="newPassword", validate=validate_password)


class UserCardSchema(Schema):
    """The public slice of a user shown next to videos, comments and subscriptions."""
    id = fields.String()
    username = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String()


class UserOutSchema(UserCardSchema):
    email = fields.String()
    cover_image = fields.String(data_key="coverImage", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class ChannelProfileSchema(UserCardSchema):
    email = fields.String()
    cover_image = fields.String(data_key="coverImage", allow_none=True)
    subscribers_count = fields.Integer(data_key="subscribersCount")
    subscribed_to_count = fields.Integer(data_key="subscribedToCount")
    is_subscribed = fields.Boolean(data_key="isSubscribed")
    created_at = fields.DateTime(data_key="createdAt")
