from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import get_config, validate_config
from .errors import register_error_handlers
from .extensions import init_extensions
from .responses import ApiJSONProvider
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "StreamSpot API",
        "version": "1.0.0",
        "description": "REST API for a video-sharing platform: accounts, videos, subscriptions, likes, "
                       "comments, tweets, playlists and channel analytics.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

API_PREFIX = "/api/v1"


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Raises ConfigurationError when token secrets or lifetimes are missing.
    """
    app = Flask(__name__)
    app.json = ApiJSONProvider(app)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    validate_config(app.config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    origins = app.config.get("CORS_ORIGINS", "*")
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)
    init_extensions(app)

    from .health import bp as health_bp
    from .users import bp as users_bp
    from .videos import bp as videos_bp
    from .subscriptions import bp as subscriptions_bp
    from .likes import bp as likes_bp
    from .comments import bp as comments_bp
    from .tweets import bp as tweets_bp
    from .playlists import bp as playlists_bp
    from .dashboard import bp as dashboard_bp

    app.register_blueprint(health_bp, url_prefix=API_PREFIX)
    app.register_blueprint(users_bp, url_prefix=f"{API_PREFIX}/users")
    app.register_blueprint(videos_bp, url_prefix=f"{API_PREFIX}/videos")
    app.register_blueprint(subscriptions_bp, url_prefix=f"{API_PREFIX}/subscriptions")
    app.register_blueprint(likes_bp, url_prefix=f"{API_PREFIX}/likes")
    app.register_blueprint(comments_bp, url_prefix=f"{API_PREFIX}/comments")
    app.register_blueprint(tweets_bp, url_prefix=f"{API_PREFIX}/tweets")
    app.register_blueprint(playlists_bp, url_prefix=f"{API_PREFIX}/playlist")
    app.register_blueprint(dashboard_bp, url_prefix=f"{API_PREFIX}/dashboard")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to StreamSpot API",
            "docs": "/apidocs/",
            "health": f"{API_PREFIX}/healthcheck",
        }, 200

    return app
