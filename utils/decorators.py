from __future__ import annotations
from functools import wraps
from flask import request

from api.extensions import token_codec
from models import storage
from services.gate import authorize, extract_token


def jwt_required():
    """
    Authenticate the request and hand the caller to the view as ``identity``.
    Token comes from the accessToken cookie or an ``Authorization: Bearer`` header.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = extract_token(request.cookies, request.headers)
            identity = authorize(token, token_codec(), storage.get_session())
            return fn(*args, identity=identity, **kwargs)

        return wrapper

    return decorator
