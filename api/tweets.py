from flask import Blueprint

from models import storage
from models.like import Like
from models.schemas.tweet import TweetCreateSchema, TweetOutSchema
from models.tweet import Tweet
from models.user import User
from services import views
from utils.decorators import jwt_required

from .helpers import get_or_404, get_owned, request_payload
from .responses import api_response

bp = Blueprint("tweets", __name__)

tweet_create_schema = TweetCreateSchema()
tweet_out_schema = TweetOutSchema()


@bp.post("")
@jwt_required()
def create_tweet(identity):
    """
    Post a tweet
    ---
    tags:
      - Tweets
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            content: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Content is required
    """
    data = tweet_create_schema.load(request_payload())
    tweet = Tweet(content=data["content"], owner_id=identity.id)
    tweet.save()
    return api_response(201, tweet_out_schema.dump(tweet), "Tweet created successfully")


@bp.get("/user/<user_id>")
@jwt_required()
def get_user_tweets(user_id: str, identity):
    """
    A user's tweets, oldest first, with like counts
    ---
    tags:
      - Tweets
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: User not found
    """
    get_or_404(User, user_id, "User")
    tweets = views.user_tweets(storage.get_session(), user_id, identity.id)
    return api_response(200, tweets, "Tweets fetched successfully")


@bp.patch("/<tweet_id>")
@jwt_required()
def update_tweet(tweet_id: str, identity):
    """
    Edit a tweet (owner only)
    ---
    tags:
      - Tweets
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: tweet_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            content: { type: string }
    responses:
      200:
        description: Updated
      403:
        description: Not the owner
      404:
        description: Tweet not found
    """
    tweet = get_owned(Tweet, tweet_id, identity, "Tweet")
    data = tweet_create_schema.load(request_payload())

    tweet.content = data["content"]
    tweet.save()
    return api_response(200, tweet_out_schema.dump(tweet), "Tweet updated successfully")


@bp.delete("/<tweet_id>")
@jwt_required()
def delete_tweet(tweet_id: str, identity):
    """
    Delete a tweet and its likes (owner only)
    ---
    tags:
      - Tweets
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tweet_id, type: string, required: true }
    responses:
      200:
        description: Deleted
      403:
        description: Not the owner
      404:
        description: Tweet not found
    """
    tweet = get_owned(Tweet, tweet_id, identity, "Tweet")
    session = storage.get_session()
    session.query(Like).filter(Like.tweet_id == tweet.id).delete(synchronize_session=False)
    storage.delete(tweet)
    storage.save()
    return api_response(200, {}, "Tweet deleted successfully")
