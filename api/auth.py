"""
Authentication blueprint (mounted at /api/v1/auth):
- POST /register
- POST /login
- POST /refresh
- POST /logout
- GET  /me
- POST /tokens/cleanup (admin only)

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs signed with HS256,
  one secret per token type) through the app's TokenService
- Refresh tokens are recorded in the refresh_tokens table, used once on rotation,
  and revoked in bulk on logout
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, abort, current_app

from api.extensions import get_storage, get_token_service
from models.user import User
from models.schemas.user import UserCreateSchema, UserLoginSchema, UserOutSchema
from models.schemas.token import RefreshRequestSchema, TokenPairOutSchema
from utils.decorators import jwt_required, roles_required
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
refresh_request_schema = RefreshRequestSchema()
token_pair_out_schema = TokenPairOutSchema()


def token_payload(pair) -> dict:
    return token_pair_out_schema.dump(
        {
            "access_token": pair.access_token,
            "refresh_token": pair.refresh_token,
            "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        }
    )


@bp.post("/register")
def register():
    """
    Register a new user and log them in.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            first_name: { type: string, minLength: 2, maxLength: 100 }
            last_name: { type: string, minLength: 2, maxLength: 100 }
            email: { type: string, format: email }
            password: { type: string, minLength: 6 }
    responses:
      201:
        description: Created (returns user and tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    storage = get_storage()
    session = storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        abort(409, description="Email already registered")

    roles = ["user"]
    if data["email"] in current_app.config.get("ADMIN_EMAILS", []):
        roles = ["admin"]

    user = User(
        first_name=data["first_name"],
        last_name=data["last_name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        roles=roles,
    )
    storage.new(user)
    storage.save()
    logger.info("registered user %s", user.id)

    pair = get_token_service().issue_token_pair(user.id)
    return jsonify(
        {
            "data": user_out_schema.dump(user),
            "tokens": token_payload(pair),
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns user and tokens)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    session = get_storage().get_session()
    user: User = session.query(User).filter(User.email == data["email"]).first()
    if not user or not verify_password(data["password"], user.password_hash):
        abort(401, description="Invalid email or password")

    pair = get_token_service().issue_token_pair(user.id)
    return jsonify(
        {
            "data": user_out_schema.dump(user),
            "tokens": token_payload(pair),
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation).
    The presented refresh token cannot be used again.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid, expired or already used refresh token
      422:
        description: refresh_token missing
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_request_schema.load(payload)

    pair = get_token_service().rotate_refresh_token(data["refresh_token"])
    return jsonify(token_payload(pair)), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes every refresh token of the current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    get_token_service().revoke_all_for_user(g.current_user.id)
    return jsonify({"message": "Successfully logged out"}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200


@bp.post("/tokens/cleanup")
@roles_required(["admin"])
def cleanup_tokens():
    """
    Admin-only: delete refresh tokens past their expiry (revoked or not)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK (returns number of deleted tokens)
      403:
        description: Insufficient role
    """
    deleted = get_token_service().cleanup_expired()
    return jsonify({"message": "Expired refresh tokens removed", "deleted": deleted}), 200
