import pytest

from models import storage
from models.user import User
from services.sessions import SessionManager
from utils.errors import NotFound, Unauthorized, ValidationError
from utils.security import ACCESS, REFRESH


@pytest.fixture
def manager(codec):
    return SessionManager(storage, codec)


@pytest.fixture
def alice(make_user):
    return make_user("alice")


def test_login_by_username_stores_refresh_token(manager, alice, codec, reload):
    result = manager.login("alice", "password123")

    assert result.user.id == alice.id
    assert codec.verify(result.access_token, ACCESS)["sub"] == alice.id
    assert codec.verify(result.refresh_token, REFRESH)["sub"] == alice.id
    assert reload(User, alice.id).refresh_token == result.refresh_token


def test_login_by_email_is_case_insensitive(manager, alice):
    result = manager.login("  ALICE@Example.com ", "password123")
    assert result.user.id == alice.id


def test_login_failures(manager, alice):
    with pytest.raises(ValidationError):
        manager.login("", "password123")
    with pytest.raises(ValidationError):
        manager.login("alice", "")
    with pytest.raises(NotFound):
        manager.login("nobody", "password123")
    with pytest.raises(Unauthorized):
        manager.login("alice", "wrong-password")


def test_second_login_invalidates_first_refresh_token(manager, alice):
    first = manager.login("alice", "password123")
    manager.login("alice", "password123")
    with pytest.raises(Unauthorized):
        manager.refresh(first.refresh_token)


def test_refresh_rotates_and_old_token_is_single_use(manager, alice, reload):
    login = manager.login("alice", "password123")

    pair = manager.refresh(login.refresh_token)
    assert pair.refresh_token != login.refresh_token
    assert reload(User, alice.id).refresh_token == pair.refresh_token

    with pytest.raises(Unauthorized, match="expired or used"):
        manager.refresh(login.refresh_token)


def test_reuse_of_rotated_token_revokes_the_session(manager, alice, reload):
    login = manager.login("alice", "password123")
    pair = manager.refresh(login.refresh_token)

    with pytest.raises(Unauthorized):
        manager.refresh(login.refresh_token)

    assert reload(User, alice.id).refresh_token is None
    with pytest.raises(Unauthorized):
        manager.refresh(pair.refresh_token)


def test_refresh_rejects_garbage_and_access_tokens(manager, alice):
    login = manager.login("alice", "password123")
    with pytest.raises(Unauthorized, match="missing"):
        manager.refresh(None)
    with pytest.raises(Unauthorized):
        manager.refresh("not-a-token")
    with pytest.raises(Unauthorized):
        manager.refresh(login.access_token)


def test_refresh_for_deleted_user_fails(manager, alice, session):
    login = manager.login("alice", "password123")
    session.delete(session.get(User, alice.id))
    session.commit()
    with pytest.raises(Unauthorized):
        manager.refresh(login.refresh_token)


def test_logout_then_refresh_fails(manager, alice, reload):
    login = manager.login("alice", "password123")
    manager.logout(alice.id)

    assert reload(User, alice.id).refresh_token is None
    with pytest.raises(Unauthorized):
        manager.refresh(login.refresh_token)


def test_logout_is_idempotent(manager, alice, reload):
    manager.logout(alice.id)
    manager.logout(alice.id)
    assert reload(User, alice.id).refresh_token is None


def test_change_password(manager, alice):
    manager.change_password(alice.id, "password123", "brand-new-secret")

    with pytest.raises(Unauthorized):
        manager.login("alice", "password123")
    assert manager.login("alice", "brand-new-secret").user.id == alice.id


def test_change_password_keeps_existing_session(manager, alice):
    login = manager.login("alice", "password123")
    manager.change_password(alice.id, "password123", "brand-new-secret")

    pair = manager.refresh(login.refresh_token)
    assert pair.access_token


def test_change_password_failures(manager, alice):
    with pytest.raises(Unauthorized):
        manager.change_password(alice.id, "wrong-password", "brand-new-secret")
    with pytest.raises(ValidationError):
        manager.change_password(alice.id, "password123", "short")
    with pytest.raises(ValidationError):
        manager.change_password(alice.id, "password123", "")
