from __future__ import annotations
from functools import wraps
from flask import request, g, abort

from api.extensions import get_storage, get_token_service
from models.user import User


def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth:
        abort(401, description="Missing Authorization header")
    if not auth.startswith("Bearer "):
        abort(401, description="Invalid Authorization format. Use: Bearer <token>")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        abort(401, description="Invalid Authorization format. Use: Bearer <token>")
    return token


def jwt_required():
    """
    Require a valid access token. InvalidToken propagates to the
    registered error handler (401).
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            user_id = get_token_service().validate_access_token(token)

            user = get_storage().get(User, user_id)
            if not user:
                abort(401, description="User not found")
            g.current_user = user
            g.current_user_roles = list(user.roles or [])
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user has ANY of the required roles.
    Deny (403) only if there is NO overlap between user_roles and required_roles.
    """
    req = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user_roles = set(getattr(g, "current_user_roles", []))
            if not (user_roles & req):
                abort(403, description="Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
