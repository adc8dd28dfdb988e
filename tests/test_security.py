from datetime import datetime, timedelta, timezone

import pytest

from utils.errors import ConfigurationError
from utils.security import (
    ACCESS,
    REFRESH,
    TokenCodec,
    TokenInvalid,
    hash_password,
    identity_claims,
    parse_duration,
    verify_password,
)

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
CLAIMS = {"id": "user-1", "username": "alice", "email": "alice@example.com", "full_name": "Alice Smith"}


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def token_codec(clock):
    return TokenCodec(
        access_secret="access-secret",
        access_ttl=timedelta(minutes=15),
        refresh_secret="refresh-secret",
        refresh_ttl=timedelta(days=10),
        clock=clock,
    )


def _tamper(token):
    header, payload, signature = token.split(".")
    mid = len(signature) // 2
    replacement = "A" if signature[mid] != "A" else "B"
    return ".".join([header, payload, signature[:mid] + replacement + signature[mid + 1:]])


def test_password_hash_round_trip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_garbage_hash_and_empty_input():
    assert not verify_password("anything", "not-an-argon2-hash")
    assert not verify_password("", hash_password("x" * 8))
    assert not verify_password("anything", None)


@pytest.mark.parametrize("raw, expected", [
    ("15m", timedelta(minutes=15)),
    ("1d", timedelta(days=1)),
    ("10d", timedelta(days=10)),
    ("2h", timedelta(hours=2)),
    ("3600", timedelta(seconds=3600)),
    (90, timedelta(seconds=90)),
    (timedelta(minutes=5), timedelta(minutes=5)),
])
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "abc", "15x", "0", "-5m"])
def test_parse_duration_rejects_bad_values(raw):
    with pytest.raises(ConfigurationError):
        parse_duration(raw)


def test_access_token_round_trip(token_codec):
    token = token_codec.issue_access_token(CLAIMS)
    payload = token_codec.verify(token, ACCESS)

    assert payload["sub"] == "user-1"
    assert payload["type"] == ACCESS
    assert payload["fullName"] == "Alice Smith"
    assert payload["exp"] - payload["iat"] == 15 * 60
    assert identity_claims(payload) == CLAIMS


def test_refresh_token_round_trip(token_codec):
    payload = token_codec.verify(token_codec.issue_refresh_token("user-1"), REFRESH)
    assert payload["sub"] == "user-1"
    assert payload["type"] == REFRESH
    assert "username" not in payload


def test_refresh_tokens_are_unique_within_the_same_instant(token_codec):
    first = token_codec.issue_refresh_token("user-1")
    second = token_codec.issue_refresh_token("user-1")
    assert first != second


def test_tampered_token_is_rejected(token_codec):
    token = token_codec.issue_access_token(CLAIMS)
    with pytest.raises(TokenInvalid):
        token_codec.verify(_tamper(token), ACCESS)


def test_token_kinds_do_not_cross_verify(token_codec):
    with pytest.raises(TokenInvalid):
        token_codec.verify(token_codec.issue_refresh_token("user-1"), ACCESS)
    with pytest.raises(TokenInvalid):
        token_codec.verify(token_codec.issue_access_token(CLAIMS), REFRESH)


def test_same_secret_still_checks_type_claim(clock):
    shared = TokenCodec("same", timedelta(minutes=1), "same", timedelta(days=1), clock=clock)
    with pytest.raises(TokenInvalid, match="type"):
        shared.verify(shared.issue_refresh_token("user-1"), ACCESS)


def test_token_signed_with_other_secret_is_rejected(token_codec, clock):
    other = TokenCodec("other-access", timedelta(minutes=15), "other-refresh", timedelta(days=10), clock=clock)
    with pytest.raises(TokenInvalid):
        token_codec.verify(other.issue_access_token(CLAIMS), ACCESS)


def test_expiry_uses_the_injected_clock(token_codec, clock):
    token = token_codec.issue_access_token(CLAIMS)

    clock.now = T0 + timedelta(minutes=15) - timedelta(seconds=1)
    assert token_codec.verify(token, ACCESS)["sub"] == "user-1"

    clock.now = T0 + timedelta(minutes=15)
    with pytest.raises(TokenInvalid, match="expired"):
        token_codec.verify(token, ACCESS)


@pytest.mark.parametrize("garbage", [None, "", "not.a.jwt", "abc"])
def test_malformed_tokens_are_rejected(token_codec, garbage):
    with pytest.raises(TokenInvalid):
        token_codec.verify(garbage, ACCESS)


def test_codec_from_config():
    config = {
        "ACCESS_TOKEN_SECRET": "a",
        "ACCESS_TOKEN_EXPIRY": "1d",
        "REFRESH_TOKEN_SECRET": "r",
        "REFRESH_TOKEN_EXPIRY": "10d",
    }
    built = TokenCodec.from_config(config)
    assert built.access_ttl == timedelta(days=1)
    assert built.refresh_ttl == timedelta(days=10)
    assert built.algorithm == "HS256"
