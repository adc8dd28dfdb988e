from flask import Blueprint

from .responses import api_response

bp = Blueprint("health", __name__)


@bp.get("/healthcheck")
def healthcheck():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            statusCode: { type: integer, example: 200 }
            data:
              type: object
              properties:
                status: { type: string, example: ok }
            message: { type: string }
    """
    return api_response(200, {"status": "ok", "version": "1.0.0"}, "Service is healthy")
