from flask import current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models import storage
from services.media import MediaStoreError
from utils.errors import ApiError

from .responses import error_response

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    # Domain errors raised by services and blueprints
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        storage.rollback()
        if err.status_code >= 500:
            logger.error("Request failed: %s", err.message)
        return error_response(err.status_code, err.message, err.errors)

    # Marshmallow validation errors map to 400
    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(err: SchemaValidationError):
        # err.messages contains field-level details
        return error_response(400, "Invalid input", err.messages)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        storage.rollback()
        lower_msg = str(getattr(err, "orig", err)).lower()
        logger.info("Integrity error: %s", lower_msg)
        if "unique" in lower_msg or "duplicate" in lower_msg:
            return error_response(409, "Resource already exists")
        if "foreign key" in lower_msg:
            return error_response(404, "Referenced resource not found")
        return error_response(400, "Constraint failed")

    @app.errorhandler(MediaStoreError)
    def handle_media_error(err: MediaStoreError):
        storage.rollback()
        logger.error("Media host failure: %s", err)
        return error_response(500, "Media host request failed")

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.code or 400, err.description or err.name)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        storage.rollback()
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response(500, "An unexpected error occurred", details)
