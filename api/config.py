"""
Environment-aware configuration.

Token secrets and lifetimes are required; validate_config() refuses to start
the app without them.
"""
import os
from dotenv import load_dotenv

from utils.errors import ConfigurationError
from utils.security import parse_duration

load_dotenv()  # Read .env if present

REQUIRED_SETTINGS = (
    "ACCESS_TOKEN_SECRET",
    "ACCESS_TOKEN_EXPIRY",
    "REFRESH_TOKEN_SECRET",
    "REFRESH_TOKEN_EXPIRY",
)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # CORS: comma-separated origins in env; cookies need credentials
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Session tokens
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    ACCESS_TOKEN_EXPIRY = os.getenv("ACCESS_TOKEN_EXPIRY")  # e.g. "15m", "1d"
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    REFRESH_TOKEN_EXPIRY = os.getenv("REFRESH_TOKEN_EXPIRY")  # e.g. "10d"
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    AUTH_COOKIE_SECURE = _flag("AUTH_COOKIE_SECURE", "true")

    # Media host
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
    CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "StreamSpot")
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join("public", "temp"))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(512 * 1024 * 1024)))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "WARNING"
    ACCESS_TOKEN_SECRET = "test-access-secret"
    ACCESS_TOKEN_EXPIRY = "15m"
    REFRESH_TOKEN_SECRET = "test-refresh-secret"
    REFRESH_TOKEN_EXPIRY = "10d"
    AUTH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """Fail fast on missing or unusable token settings."""
    missing = [key for key in REQUIRED_SETTINGS if not config.get(key)]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
    for key in ("ACCESS_TOKEN_EXPIRY", "REFRESH_TOKEN_EXPIRY"):
        parse_duration(config[key])
    if config["ACCESS_TOKEN_SECRET"] == config["REFRESH_TOKEN_SECRET"]:
        raise ConfigurationError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
