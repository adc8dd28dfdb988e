"""
Per-app collaborators, built once in create_app and read through current_app.
"""
from flask import current_app

from models import storage
from services.media import CloudinaryStore, MediaStore
from services.sessions import SessionManager
from utils.security import TokenCodec


def init_extensions(app) -> None:
    app.extensions["token_codec"] = TokenCodec.from_config(app.config)
    app.extensions["media_store"] = CloudinaryStore.from_config(app.config)


def token_codec() -> TokenCodec:
    return current_app.extensions["token_codec"]


def media_store() -> MediaStore:
    return current_app.extensions["media_store"]


def session_manager() -> SessionManager:
    return SessionManager(storage, token_codec())
