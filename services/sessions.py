"""
Session lifecycle: login, refresh (rotation), logout, password change.

The refresh token currently stored on the user row is the only one that can
be exchanged. Login and refresh overwrite it, logout clears it. A refresh
token that verifies cryptographically but no longer matches the stored value
is treated as a replay: the stored token is cleared as well, so the session
family is logged out.

Password changes leave the stored refresh token in place:
sessions opened before the change stay valid until logout or expiry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from models.repositories import user_repo
from models.schemas.common import PASSWORD_MIN_LENGTH
from models.user import User
from services.gate import Identity
from utils.errors import NotFound, Unauthorized, ValidationError
from utils.security import REFRESH, TokenCodec, TokenInvalid, hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


class SessionManager:
    def __init__(self, storage, codec: TokenCodec):
        self.storage = storage
        self.codec = codec

    @property
    def session(self):
        return self.storage.get_session()

    def _mint(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.codec.issue_access_token(Identity.from_user(user).to_claims()),
            refresh_token=self.codec.issue_refresh_token(user.id),
        )

    def login(self, identifier: Optional[str], password: Optional[str]) -> LoginResult:
        if not identifier or not str(identifier).strip():
            raise ValidationError("username or email is required")
        if not password:
            raise ValidationError("password is required")

        user = user_repo.find_by_identifier(self.session, identifier)
        if user is None:
            raise NotFound("User does not exist")
        if not verify_password(password, user.password_hash):
            logger.warning("Failed login for user %s", user.id)
            raise Unauthorized("Invalid user credentials")

        pair = self._mint(user)
        user_repo.replace_refresh_token(self.session, user.id, pair.refresh_token)
        logger.info("User %s logged in", user.id)
        return LoginResult(user=user, access_token=pair.access_token, refresh_token=pair.refresh_token)

    def refresh(self, presented: Optional[str]) -> TokenPair:
        if not presented:
            raise Unauthorized("Refresh token is missing")
        try:
            payload = self.codec.verify(presented, REFRESH)
        except TokenInvalid as exc:
            logger.info("Rejected refresh token: %s", exc)
            raise Unauthorized("Invalid refresh token") from None

        user_id = payload["sub"]
        user = user_repo.find_by_id(self.session, user_id)
        if user is None:
            raise Unauthorized("Invalid refresh token")

        pair = self._mint(user)
        if not user_repo.replace_refresh_token(self.session, user_id, pair.refresh_token, expected=presented):
            # superseded or revoked token presented again
            user_repo.replace_refresh_token(self.session, user_id, None)
            logger.warning("Refresh token reuse detected for user %s; session revoked", user_id)
            raise Unauthorized("Refresh token is expired or used")
        return pair

    def logout(self, subject_id: str) -> None:
        user_repo.replace_refresh_token(self.session, subject_id, None)
        logger.info("User %s logged out", subject_id)

    def change_password(self, subject_id: str, old_password: Optional[str], new_password: Optional[str]) -> None:
        user = user_repo.find_by_id(self.session, subject_id)
        if user is None:
            raise Unauthorized()
        if not verify_password(old_password or "", user.password_hash):
            raise Unauthorized("Invalid old password")
        if not new_password or len(new_password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")
        user_repo.update_fields(self.session, user.id, password_hash=hash_password(new_password))
        logger.info("User %s changed password", user.id)
