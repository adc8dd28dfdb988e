"""
Users blueprint: account lifecycle and the per-user read views.

- POST  /users/register
- POST  /users/login
- POST  /users/logout
- POST  /users/refresh-token
- POST  /users/change-password
- GET   /users/current-user
- PATCH /users/update-account-details
- PATCH /users/update-avatar
- PATCH /users/update-cover-image
- GET   /users/c/<username>
- GET   /users/history

Tokens are returned in the body and set as HttpOnly cookies.
"""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, request

from models import storage
from models.repositories import user_repo
from models.schemas.user import (
    ChangePasswordSchema,
    UserLoginSchema,
    UserOutSchema,
    UserRegisterSchema,
    UserUpdateSchema,
)
from models.user import User
from services import views
from services.gate import ACCESS_COOKIE, REFRESH_COOKIE
from utils.decorators import jwt_required
from utils.errors import Conflict, Unauthorized
from utils.security import hash_password

from .extensions import media_store, session_manager
from .helpers import discard_asset, request_payload, upload_from_request
from .responses import api_response

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
user_update_schema = UserUpdateSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _set_auth_cookies(response, access_token: str, refresh_token: str):
    secure = current_app.config.get("AUTH_COOKIE_SECURE", True)
    response.set_cookie(ACCESS_COOKIE, access_token, httponly=True, secure=secure, samesite="Lax")
    response.set_cookie(REFRESH_COOKIE, refresh_token, httponly=True, secure=secure, samesite="Lax")
    return response


def _clear_auth_cookies(response):
    secure = current_app.config.get("AUTH_COOKIE_SECURE", True)
    response.delete_cookie(ACCESS_COOKIE, httponly=True, secure=secure, samesite="Lax")
    response.delete_cookie(REFRESH_COOKIE, httponly=True, secure=secure, samesite="Lax")
    return response


@bp.post("/register")
def register():
    """
    Register a new user
    ---
    tags:
      - Users
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Username or email already taken
    """
    data = user_register_schema.load(request_payload())

    session = storage.get_session()
    if user_repo.exists_with(session, username=data["username"], email=data["email"]):
        raise Conflict("User with email or username already exists")

    store = media_store()
    avatar = upload_from_request(store, "avatar", required=True)
    cover = upload_from_request(store, "coverImage")

    user = User(
        username=data["username"],
        email=data["email"],
        full_name=data["full_name"],
        password_hash=hash_password(data["password"]),
        avatar=avatar.url,
        avatar_public_id=avatar.public_id,
        cover_image=cover.url if cover else "",
        cover_image_public_id=cover.public_id if cover else None,
        watch_history=[],
    )
    user_repo.save(session, user)
    logger.info("Registered user %s", user.id)
    return api_response(201, user_out_schema.dump(user), "User registered successfully")


@bp.post("/login")
def login():
    """
    Login with username or email
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK (tokens in body and cookies)
      400:
        description: Missing username/email or password
      401:
        description: Invalid user credentials
      404:
        description: User does not exist
    """
    payload = user_login_schema.load(request_payload())
    identifier = payload.get("username") or payload.get("email")
    result = session_manager().login(identifier, payload.get("password"))

    response, status = api_response(
        200,
        {
            "user": user_out_schema.dump(result.user),
            "accessToken": result.access_token,
            "refreshToken": result.refresh_token,
        },
        "User logged in successfully",
    )
    return _set_auth_cookies(response, result.access_token, result.refresh_token), status


@bp.post("/logout")
@jwt_required()
def logout(identity):
    """
    Logout: revoke the stored refresh token and clear cookies
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    session_manager().logout(identity.id)
    response, status = api_response(200, {}, "User logged out")
    return _clear_auth_cookies(response), status


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange the current refresh token for a new pair (rotation)
    Token is read from the refreshToken cookie, or the JSON body.
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refreshToken: { type: string }
    responses:
      200:
        description: New access and refresh tokens
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    presented = request.cookies.get(REFRESH_COOKIE) or request_payload().get("refreshToken")
    pair = session_manager().refresh(presented)

    response, status = api_response(
        200,
        {"accessToken": pair.access_token, "refreshToken": pair.refresh_token},
        "Access token refreshed",
    )
    return _set_auth_cookies(response, pair.access_token, pair.refresh_token), status


@bp.post("/change-password")
@jwt_required()
def change_password(identity):
    """
    Change the caller's password
    ---
    tags:
      - Users
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
            oldPassword: { type: string }
            newPassword: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: New password missing or too short
      401:
        description: Invalid old password
    """
    data = change_password_schema.load(request_payload())
    session_manager().change_password(identity.id, data["old_password"], data["new_password"])
    return api_response(200, {}, "Password changed successfully")


@bp.get("/current-user")
@jwt_required()
def current_user(identity):
    """
    Get the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = user_repo.find_by_id(storage.get_session(), identity.id)
    if user is None:
        raise Unauthorized()
    return api_response(200, user_out_schema.dump(user), "Current user fetched successfully")


@bp.patch("/update-account-details")
@jwt_required()
def update_account_details(identity):
    """
    Update full name and email
    ---
    tags:
      - Users
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
            fullName: { type: string }
            email: { type: string }
    responses:
      200:
        description: Updated
      409:
        description: Email already in use
    """
    data = user_update_schema.load(request_payload())

    session = storage.get_session()
    if user_repo.exists_with(session, email=data["email"], exclude_id=identity.id):
        raise Conflict("Email is already in use")
    user_repo.update_fields(session, identity.id, full_name=data["full_name"], email=data["email"])
    user = user_repo.find_by_id(session, identity.id)
    return api_response(200, user_out_schema.dump(user), "Account details updated successfully")


def _replace_image(identity, field: str, url_attr: str, public_id_attr: str):
    store = media_store()
    asset = upload_from_request(store, field, required=True)

    session = storage.get_session()
    user = user_repo.find_by_id(session, identity.id)
    previous = getattr(user, public_id_attr)
    user_repo.update_fields(session, user.id, **{url_attr: asset.url, public_id_attr: asset.public_id})
    discard_asset(store, previous)
    return user_repo.find_by_id(session, identity.id)


@bp.patch("/update-avatar")
@jwt_required()
def update_avatar(identity):
    """
    Replace the avatar image
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200:
        description: Updated
      400:
        description: avatar file is required
    """
    user = _replace_image(identity, "avatar", "avatar", "avatar_public_id")
    return api_response(200, user_out_schema.dump(user), "Avatar updated successfully")


@bp.patch("/update-cover-image")
@jwt_required()
def update_cover_image(identity):
    """
    Replace the cover image
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: coverImage, type: file, required: true }
    responses:
      200:
        description: Updated
      400:
        description: coverImage file is required
    """
    user = _replace_image(identity, "coverImage", "cover_image", "cover_image_public_id")
    return api_response(200, user_out_schema.dump(user), "Cover image updated successfully")


@bp.get("/c/<username>")
@jwt_required()
def channel_profile(username: str, identity):
    """
    Channel profile with subscriber counts
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: username, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: Channel does not exist
    """
    profile = views.channel_profile(storage.get_session(), username, identity.id)
    return api_response(200, profile, "User channel fetched successfully")


@bp.get("/history")
@jwt_required()
def history(identity):
    """
    Watch history, oldest first
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    videos = views.watch_history(storage.get_session(), identity.id)
    return api_response(200, videos, "Watch history fetched successfully")
