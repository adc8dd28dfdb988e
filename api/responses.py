"""
Uniform response envelope.

success: {statusCode, data, message, success: true}
failure: {statusCode, message, errors?, success: false}
"""
from datetime import date, datetime

from flask import jsonify
from flask.json.provider import DefaultJSONProvider


class ApiJSONProvider(DefaultJSONProvider):
    """ISO-8601 dates instead of Flask's HTTP-date format."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def api_response(status: int, data=None, message: str = "Success"):
    payload = {
        "statusCode": status,
        "data": data if data is not None else {},
        "message": message,
        "success": status < 400,
    }
    return jsonify(payload), status


def error_response(status: int, message: str, errors=None):
    payload = {"statusCode": status, "message": message, "success": False}
    if errors:
        payload["errors"] = errors
    return jsonify(payload), status
