"""
Authorization gate: turns a raw access token into an Identity.

Every rejection raises the same Unauthorized message so callers cannot tell
a missing token from an expired one or from an unknown user.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from models.repositories import user_repo
from utils.errors import Unauthorized
from utils.security import ACCESS, TokenCodec, TokenInvalid

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
_BEARER = "bearer "


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, without any secret fields."""
    id: str
    username: str
    email: str
    full_name: str
    avatar: Optional[str] = None
    cover_image: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar,
            cover_image=user.cover_image,
        )

    def to_claims(self) -> Dict[str, Any]:
        return asdict(self)


def extract_token(cookies: Mapping[str, str], headers: Mapping[str, str]) -> Optional[str]:
    """accessToken cookie first, then an ``Authorization: Bearer`` header."""
    token = (cookies.get(ACCESS_COOKIE) or "").strip()
    if token:
        return token
    header = (headers.get("Authorization") or "").strip()
    if header.lower().startswith(_BEARER):
        return header[len(_BEARER):].strip() or None
    return None


def authorize(raw_token: Optional[str], codec: TokenCodec, session) -> Identity:
    if not raw_token:
        logger.debug("Rejected request: no access token")
        raise Unauthorized()
    try:
        payload = codec.verify(raw_token, ACCESS)
    except TokenInvalid as exc:
        logger.debug("Rejected access token: %s", exc)
        raise Unauthorized() from None
    user = user_repo.find_by_id(session, payload.get("sub"))
    if user is None:
        logger.debug("Rejected access token: subject no longer exists")
        raise Unauthorized()
    return Identity.from_user(user)
