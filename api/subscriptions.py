from flask import Blueprint

from models import storage
from models.schemas.subscription import SubscriptionOutSchema
from models.subscription import Subscription
from models.user import User
from services import views
from utils.decorators import jwt_required
from utils.errors import ValidationError

from .helpers import get_or_404
from .responses import api_response

bp = Blueprint("subscriptions", __name__)

subscription_out_schema = SubscriptionOutSchema()


@bp.post("/channel/<channel_id>")
@jwt_required()
def toggle_subscription(channel_id: str, identity):
    """
    Subscribe to or unsubscribe from a channel
    ---
    tags:
      - Subscriptions
    security:
      - Bearer: []
    parameters:
      - { in: path, name: channel_id, type: string, required: true }
    responses:
      200:
        description: "data.action is subscribed or unsubscribed"
      400:
        description: Cannot subscribe to your own channel
      404:
        description: Channel not found
    """
    if channel_id == identity.id:
        raise ValidationError("You cannot subscribe to your own channel")
    get_or_404(User, channel_id, "Channel")

    session = storage.get_session()
    existing = (
        session.query(Subscription)
        .filter(Subscription.subscriber_id == identity.id, Subscription.channel_id == channel_id)
        .first()
    )
    if existing is not None:
        storage.delete(existing)
        storage.save()
        return api_response(200, {"action": "unsubscribed"}, "Unsubscribed successfully")

    subscription = Subscription(subscriber_id=identity.id, channel_id=channel_id)
    subscription.save()
    return api_response(
        200,
        {"action": "subscribed", "subscription": subscription_out_schema.dump(subscription)},
        "Subscribed successfully",
    )


@bp.get("/subscribed-channels/<subscriber_id>")
@jwt_required()
def get_subscribed_channels(subscriber_id: str, identity):
    """
    Channels a user subscribes to
    ---
    tags:
      - Subscriptions
    security:
      - Bearer: []
    parameters:
      - { in: path, name: subscriber_id, type: string, required: true }
    responses:
      200:
        description: List of channel cards
      404:
        description: User not found
    """
    get_or_404(User, subscriber_id, "User")
    channels = views.subscribed_channels(storage.get_session(), subscriber_id)
    return api_response(200, channels, "Subscribed channels fetched successfully")


@bp.get("/channel-subscribers/<channel_id>")
@jwt_required()
def get_channel_subscribers(channel_id: str, identity):
    """
    Subscribers of a channel
    ---
    tags:
      - Subscriptions
    security:
      - Bearer: []
    parameters:
      - { in: path, name: channel_id, type: string, required: true }
    responses:
      200:
        description: List of subscriber cards
      404:
        description: Channel not found
    """
    get_or_404(User, channel_id, "Channel")
    subscribers = views.channel_subscribers(storage.get_session(), channel_id)
    return api_response(200, subscribers, "Subscribers fetched successfully")
