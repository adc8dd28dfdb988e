import pytest

from api import create_app
from api.config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config, validate_config
from utils.errors import ConfigurationError

VALID = {
    "ACCESS_TOKEN_SECRET": "access",
    "ACCESS_TOKEN_EXPIRY": "15m",
    "REFRESH_TOKEN_SECRET": "refresh",
    "REFRESH_TOKEN_EXPIRY": "10d",
}


@pytest.mark.parametrize("name, expected", [
    ("prod", ProductionConfig),
    ("production", ProductionConfig),
    ("test", TestingConfig),
    ("testing", TestingConfig),
    ("dev", DevelopmentConfig),
    ("anything-else", DevelopmentConfig),
])
def test_get_config_by_name(name, expected):
    assert get_config(name) is expected


def test_valid_config_passes():
    validate_config(dict(VALID))


@pytest.mark.parametrize("missing", sorted(VALID))
def test_missing_setting_is_fatal(missing):
    config = dict(VALID)
    config[missing] = None
    with pytest.raises(ConfigurationError, match=missing):
        validate_config(config)


def test_unparseable_lifetime_is_fatal():
    config = dict(VALID, ACCESS_TOKEN_EXPIRY="soon")
    with pytest.raises(ConfigurationError):
        validate_config(config)


def test_shared_secret_is_fatal():
    config = dict(VALID, REFRESH_TOKEN_SECRET=VALID["ACCESS_TOKEN_SECRET"])
    with pytest.raises(ConfigurationError, match="differ"):
        validate_config(config)


def test_create_app_refuses_to_start_without_secrets(monkeypatch):
    monkeypatch.setattr(DevelopmentConfig, "ACCESS_TOKEN_SECRET", None)
    with pytest.raises(ConfigurationError):
        create_app("dev")


def test_testing_config_builds_an_app(app):
    assert app.config["TESTING"] is True
    assert app.config["AUTH_COOKIE_SECURE"] is False
    assert "token_codec" in app.extensions
