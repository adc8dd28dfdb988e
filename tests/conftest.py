import os

# must be set before models.storage is created on first import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "testing"

from datetime import datetime, timedelta, timezone  # noqa: E402
import itertools  # noqa: E402

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.comment import Comment  # noqa: E402
from models.like import Like  # noqa: E402
from models.playlist import Playlist  # noqa: E402
from models.subscription import Subscription  # noqa: E402
from models.tweet import Tweet  # noqa: E402
from models.user import User  # noqa: E402
from models.video import Video  # noqa: E402
from services.gate import Identity  # noqa: E402
from services.media import MediaAsset, MediaStore, MediaStoreError  # noqa: E402
from utils.security import hash_password  # noqa: E402

DEFAULT_PASSWORD = "password123"
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeMediaStore(MediaStore):
    """In-memory media host. Records what was uploaded and deleted."""

    def __init__(self):
        self.assets = {}
        self.uploaded_paths = []
        self.deleted = []
        self.fail_uploads = False
        self._ids = itertools.count(1)

    def upload(self, local_path):
        if self.fail_uploads:
            raise MediaStoreError("upload refused")
        assert os.path.exists(local_path)
        self.uploaded_paths.append(local_path)
        public_id = f"asset-{next(self._ids)}"
        asset = MediaAsset(public_id=public_id, url=f"https://media.test/{public_id}", duration=12.5)
        self.assets[public_id] = asset
        return asset

    def delete(self, public_id):
        if not public_id:
            return False
        self.deleted.append(public_id)
        return self.assets.pop(public_id, None) is not None


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    app.extensions["media_store"] = FakeMediaStore()
    storage.drop_all()
    storage.reload()
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def media(app):
    return app.extensions["media_store"]


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


@pytest.fixture
def session(app):
    return storage.get_session()


def _persist(obj):
    storage.new(obj)
    storage.save()
    return obj


@pytest.fixture
def make_user(app):
    def _make(username="alice", password=DEFAULT_PASSWORD, **overrides):
        fields = {
            "username": username,
            "email": f"{username}@example.com",
            "full_name": username.title(),
            "avatar": f"https://media.test/{username}.png",
            "avatar_public_id": f"{username}-avatar",
            "password_hash": hash_password(password),
            "watch_history": [],
        }
        fields.update(overrides)
        return _persist(User(**fields))
    return _make


@pytest.fixture
def make_video(app):
    counter = itertools.count(1)

    def _make(owner, title=None, **overrides):
        n = next(counter)
        fields = {
            "owner_id": owner.id,
            "title": title or f"video-{n:02d}",
            "description": f"description {n}",
            "video_file_url": f"https://media.test/video-{n}.mp4",
            "video_file_public_id": f"video-{n}",
            "duration": 60.0,
            "views": 0,
            "is_published": True,
            "created_at": BASE_TIME + timedelta(minutes=n),
        }
        fields.update(overrides)
        return _persist(Video(**fields))
    return _make


@pytest.fixture
def subscribe(app):
    def _subscribe(subscriber, channel):
        return _persist(Subscription(subscriber_id=subscriber.id, channel_id=channel.id))
    return _subscribe


@pytest.fixture
def like(app):
    def _like(user, video=None, comment=None, tweet=None, **overrides):
        return _persist(Like(
            liked_by_id=user.id,
            video_id=video.id if video else None,
            comment_id=comment.id if comment else None,
            tweet_id=tweet.id if tweet else None,
            **overrides,
        ))
    return _like


@pytest.fixture
def make_comment(app):
    def _make(owner, video, content="nice video", **overrides):
        return _persist(Comment(owner_id=owner.id, video_id=video.id, content=content, **overrides))
    return _make


@pytest.fixture
def make_tweet(app):
    def _make(owner, content="hello world", **overrides):
        return _persist(Tweet(owner_id=owner.id, content=content, **overrides))
    return _make


@pytest.fixture
def make_playlist(app):
    def _make(owner, videos=(), name="favourites", **overrides):
        return _persist(Playlist(
            owner_id=owner.id,
            name=name,
            description="things worth watching",
            videos=[v.id for v in videos],
            **overrides,
        ))
    return _make


@pytest.fixture
def auth_headers(codec):
    def _headers(user):
        token = codec.issue_access_token(Identity.from_user(user).to_claims())
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def reload():
    """Fresh copy of a row straight from the database."""
    def _reload(model, obj_id):
        session = storage.get_session()
        session.expire_all()
        return session.get(model, obj_id)
    return _reload
