"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access / refresh JWT creation and verification via PyJWT
- JTI generation for token identifiers

TokenCodec holds no state beyond its configuration, so it can be exercised
with a fixed clock and no database.
"""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.errors import ConfigurationError

ACCESS = "access"
REFRESH = "refresh"

ph = PasswordHasher()

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


class TokenInvalid(Exception):
    """Signature mismatch, malformed token, wrong kind or expired."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password or not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def parse_duration(value: Any) -> timedelta:
    """Parse "15m", "1d", "10d", "3600" or a timedelta into a timedelta."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    delta = timedelta(**{_DURATION_UNITS[unit]: int(amount)})
    if delta <= timedelta(0):
        raise ConfigurationError(f"Duration must be positive: {value!r}")
    return delta


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Signs and verifies the two session token kinds.

    Access and refresh tokens are signed with different secrets and carry a
    ``type`` claim, so a refresh token never verifies as an access token.
    """

    def __init__(
        self,
        access_secret: str,
        access_ttl: timedelta,
        refresh_secret: str,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.access_secret = access_secret
        self.access_ttl = access_ttl
        self.refresh_secret = refresh_secret
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self._clock = clock or _utcnow

    @classmethod
    def from_config(cls, config: Mapping[str, Any], clock=None) -> "TokenCodec":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            access_ttl=parse_duration(config["ACCESS_TOKEN_EXPIRY"]),
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            refresh_ttl=parse_duration(config["REFRESH_TOKEN_EXPIRY"]),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            clock=clock,
        )

    def _secret(self, kind: str) -> str:
        if kind == ACCESS:
            return self.access_secret
        if kind == REFRESH:
            return self.refresh_secret
        raise ValueError(f"Unknown token kind: {kind}")

    def _ttl(self, kind: str) -> timedelta:
        return self.access_ttl if kind == ACCESS else self.refresh_ttl

    def _encode(self, kind: str, subject: str, extra: Optional[Dict[str, Any]] = None) -> str:
        now = self._clock()
        payload = {
            "sub": str(subject),
            "type": kind,
            "jti": generate_jti(),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl(kind)).timestamp()),
        }
        if extra:
            payload.update(extra)
        return jwt.encode(payload, self._secret(kind), algorithm=self.algorithm)

    def issue_access_token(self, claims: Mapping[str, Any]) -> str:
        """Mint a short-lived access token.

        ``claims`` needs ``id``, ``username``, ``email`` and ``full_name``.
        """
        return self._encode(
            ACCESS,
            claims["id"],
            {
                "username": claims.get("username"),
                "email": claims.get("email"),
                "fullName": claims.get("full_name"),
            },
        )

    def issue_refresh_token(self, subject_id: str) -> str:
        return self._encode(REFRESH, subject_id)

    def verify(self, token: Optional[str], kind: str) -> Dict[str, Any]:
        """
        Decode and validate a token of the given kind.
        Raises TokenInvalid on bad signature, malformed input, wrong kind or expiry.
        """
        secret = self._secret(kind)
        if not token or not isinstance(token, str):
            raise TokenInvalid("Token missing")
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "exp", "type"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc}") from exc

        if decoded.get("type") != kind:
            raise TokenInvalid("Wrong token type")
        try:
            expires_at = int(decoded["exp"])
        except (TypeError, ValueError) as exc:
            raise TokenInvalid("Invalid expiry claim") from exc
        if self._clock().timestamp() >= expires_at:
            raise TokenInvalid("Token expired")
        return decoded


def identity_claims(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """The identity subset embedded in an access token."""
    return {
        "id": payload.get("sub"),
        "username": payload.get("username"),
        "email": payload.get("email"),
        "full_name": payload.get("fullName"),
    }
