import io
import os

from models.user import User

USERS = "/api/v1/users"


def _register_form(**overrides):
    form = {
        "username": "Alice",
        "email": "ALICE@example.com",
        "fullName": "Alice Smith",
        "password": "password123",
        "avatar": (io.BytesIO(b"avatar-bytes"), "avatar.png"),
    }
    form.update(overrides)
    return form


def _refresh_with_body(app, token):
    # separate client: no cookie jar, so only the body token is sent
    return app.test_client().post(f"{USERS}/refresh-token", json={"refreshToken": token})


def test_healthcheck(client):
    resp = client.get("/api/v1/healthcheck")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "ok"


def test_unknown_route_uses_failure_envelope(client):
    resp = client.get("/api/v1/nope")
    body = resp.get_json()
    assert resp.status_code == 404
    assert body["success"] is False
    assert body["statusCode"] == 404


def test_register(client, app, media):
    resp = client.post(f"{USERS}/register", data=_register_form(), content_type="multipart/form-data")
    body = resp.get_json()

    assert resp.status_code == 201
    assert body["success"] is True
    assert body["data"]["username"] == "alice"
    assert body["data"]["email"] == "alice@example.com"
    assert body["data"]["avatar"].startswith("https://media.test/")
    assert "password" not in body["data"]
    assert "password_hash" not in body["data"]
    assert len(media.assets) == 1
    # temp files are removed after upload
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


def test_register_with_cover_image(client, media):
    form = _register_form(coverImage=(io.BytesIO(b"cover"), "cover.jpg"))
    resp = client.post(f"{USERS}/register", data=form, content_type="multipart/form-data")
    assert resp.status_code == 201
    assert resp.get_json()["data"]["coverImage"].startswith("https://media.test/")
    assert len(media.assets) == 2


def test_register_requires_avatar(client, session):
    form = _register_form()
    del form["avatar"]
    resp = client.post(f"{USERS}/register", data=form, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert session.query(User).count() == 0


def test_register_validation_errors(client):
    form = _register_form(password="short", email="not-an-email")
    resp = client.post(f"{USERS}/register", data=form, content_type="multipart/form-data")
    body = resp.get_json()
    assert resp.status_code == 400
    assert set(body["errors"]) == {"password", "email"}


def test_register_duplicate_username_or_email(client, make_user, media):
    make_user("alice")
    resp = client.post(f"{USERS}/register", data=_register_form(), content_type="multipart/form-data")
    assert resp.status_code == 409
    form = _register_form(username="someone-else", email="alice@example.com")
    assert client.post(f"{USERS}/register", data=form, content_type="multipart/form-data").status_code == 409
    assert media.assets == {}


def test_login_sets_cookies_and_returns_tokens(client, make_user, codec):
    alice = make_user("alice")
    resp = client.post(f"{USERS}/login", json={"email": "Alice@Example.com", "password": "password123"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["data"]["user"]["id"] == alice.id
    assert codec.verify(body["data"]["accessToken"], "access")["sub"] == alice.id
    cookies = resp.headers.getlist("Set-Cookie")
    assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in cookies)
    assert any(c.startswith("refreshToken=") and "HttpOnly" in c for c in cookies)


def test_login_failures(client, make_user):
    make_user("alice")
    assert client.post(f"{USERS}/login", json={"password": "password123"}).status_code == 400
    assert client.post(f"{USERS}/login", json={"username": "ghost", "password": "password123"}).status_code == 404
    resp = client.post(f"{USERS}/login", json={"username": "alice", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid user credentials"


def test_refresh_with_cookie(client, make_user):
    make_user("alice")
    client.post(f"{USERS}/login", json={"username": "alice", "password": "password123"})

    resp = client.post(f"{USERS}/refresh-token")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["refreshToken"]


def test_refresh_token_is_single_use(client, app, make_user):
    make_user("alice")
    login = client.post(f"{USERS}/login", json={"username": "alice", "password": "password123"}).get_json()
    old = login["data"]["refreshToken"]

    rotated = _refresh_with_body(app, old)
    assert rotated.status_code == 200
    new = rotated.get_json()["data"]["refreshToken"]
    assert new != old

    reused = _refresh_with_body(app, old)
    assert reused.status_code == 401
    # reuse revoked the whole session
    assert _refresh_with_body(app, new).status_code == 401


def test_refresh_without_token(app):
    resp = app.test_client().post(f"{USERS}/refresh-token", json={})
    assert resp.status_code == 401


def test_logout_then_refresh_fails(client, app, make_user):
    make_user("alice")
    login = client.post(f"{USERS}/login", json={"username": "alice", "password": "password123"}).get_json()
    refresh = login["data"]["refreshToken"]
    headers = {"Authorization": f"Bearer {login['data']['accessToken']}"}

    resp = client.post(f"{USERS}/logout", headers=headers)
    assert resp.status_code == 200
    assert any(c.startswith("accessToken=;") for c in resp.headers.getlist("Set-Cookie"))
    # idempotent while the access token lives
    assert client.post(f"{USERS}/logout", headers=headers).status_code == 200
    assert _refresh_with_body(app, refresh).status_code == 401


def test_change_password(client, make_user, auth_headers):
    alice = make_user("alice")
    headers = auth_headers(alice)

    wrong = client.post(f"{USERS}/change-password", headers=headers,
                        json={"oldPassword": "not-it-at-all", "newPassword": "new-password-1"})
    assert wrong.status_code == 401

    short = client.post(f"{USERS}/change-password", headers=headers,
                        json={"oldPassword": "password123", "newPassword": "short"})
    assert short.status_code == 400

    ok = client.post(f"{USERS}/change-password", headers=headers,
                     json={"oldPassword": "password123", "newPassword": "new-password-1"})
    assert ok.status_code == 200
    assert client.post(f"{USERS}/login", json={"username": "alice", "password": "new-password-1"}).status_code == 200


def test_update_account_details(client, make_user, auth_headers):
    headers = auth_headers(make_user("alice"))
    make_user("bob")

    # the 409 rolls the session back, so headers are built before it
    taken = client.patch(f"{USERS}/update-account-details", headers=headers,
                         json={"fullName": "Alice B", "email": "bob@example.com"})
    assert taken.status_code == 409

    resp = client.patch(f"{USERS}/update-account-details", headers=headers,
                        json={"fullName": "  Alice B  ", "email": "New@Example.com"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["fullName"] == "Alice B"
    assert resp.get_json()["data"]["email"] == "new@example.com"


def test_update_avatar_replaces_and_deletes_old_asset(client, make_user, auth_headers, media, reload):
    alice = make_user("alice")
    resp = client.patch(f"{USERS}/update-avatar", headers=auth_headers(alice),
                        data={"avatar": (io.BytesIO(b"new"), "new.png")}, content_type="multipart/form-data")

    assert resp.status_code == 200
    stored = reload(User, alice.id)
    assert stored.avatar == resp.get_json()["data"]["avatar"]
    assert stored.avatar_public_id in media.assets
    assert media.deleted == ["alice-avatar"]


def test_update_avatar_requires_file(client, make_user, auth_headers, media):
    alice = make_user("alice")
    resp = client.patch(f"{USERS}/update-avatar", headers=auth_headers(alice),
                        data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert media.deleted == []


def test_failed_upload_keeps_old_cover_image(client, make_user, auth_headers, media, reload):
    alice = make_user("alice", cover_image="https://media.test/old.png", cover_image_public_id="old-cover")
    media.fail_uploads = True

    resp = client.patch(f"{USERS}/update-cover-image", headers=auth_headers(alice),
                        data={"coverImage": (io.BytesIO(b"x"), "c.png")}, content_type="multipart/form-data")
    assert resp.status_code == 500
    assert reload(User, alice.id).cover_image_public_id == "old-cover"
    assert media.deleted == []


def test_channel_profile_route(client, make_user, auth_headers, subscribe):
    alice, bob = make_user("alice"), make_user("bob")
    subscribe(bob, alice)

    resp = client.get(f"{USERS}/c/alice", headers=auth_headers(bob))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["subscribersCount"] == 1
    assert resp.get_json()["data"]["isSubscribed"] is True
    assert client.get(f"{USERS}/c/ghost", headers=auth_headers(bob)).status_code == 404


def test_history_route(client, make_user, make_video, auth_headers):
    alice, bob = make_user("alice"), make_user("bob")
    video = make_video(bob)
    client.get(f"/api/v1/videos/{video.id}", headers=auth_headers(alice))
    client.get(f"/api/v1/videos/{video.id}", headers=auth_headers(alice))

    resp = client.get(f"{USERS}/history", headers=auth_headers(alice))
    assert [v["id"] for v in resp.get_json()["data"]] == [video.id, video.id]
