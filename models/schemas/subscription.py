from marshmallow import Schema, fields


class SubscriptionOutSchema(Schema):
    id = fields.String()
    subscriber_id = fields.String(data_key="subscriber")
    channel_id = fields.String(data_key="channel")
    created_at = fields.DateTime(data_key="createdAt")
