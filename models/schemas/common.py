from marshmallow import Schema, ValidationError, fields

PASSWORD_MIN_LENGTH = 8


def not_blank(value) -> None:
    if value is None or not str(value).strip():
        raise ValidationError("Field cannot be blank.")


def validate_password(value) -> None:
    if value is None or len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")


def get_value(obj, name, default=None):
    """Read ``name`` from a model instance or from a pipeline document."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def media_ref(url, public_id):
    if not url:
        return None
    return {"url": url, "publicId": public_id}


class TrimmedString(fields.String):
    """String field that strips surrounding whitespace on load."""

    def _deserialize(self, value, attr, data, **kwargs):
        result = super()._deserialize(value, attr, data, **kwargs)
        return result.strip() if isinstance(result, str) else result


class OwnedOutSchema(Schema):
    """Shared dump fields for documents that belong to a user."""
    id = fields.String()
    owner = fields.Method("get_owner")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

    def get_owner(self, obj):
        # folded owner card when the pipeline joined it, otherwise the bare id
        owner = get_value(obj, "owner")
        if isinstance(owner, dict):
            return owner
        return get_value(obj, "owner_id")
