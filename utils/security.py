"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT signing/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from utils.exceptions import InvalidToken

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def encode_token(subject: str, token_type: str, expires_at: datetime, secret: str, algorithm: str) -> str:
    payload = {
        "sub": str(subject),
        "exp": int(expires_at.timestamp()),
        "type": token_type,
        "jti": generate_jti(),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str,
    secret: str,
    algorithm: str,
    expected_type: str,
    now: datetime,
    verify_expiry: bool = True,
) -> Dict[str, Any]:
    """
    Verify signature and claims of a JWT and return them.
    Expiry is checked against `now` (strictly after exp means expired) so the
    caller's clock decides, not the library's. With verify_expiry=False the
    caller checks is_expired() itself.
    Raises InvalidToken on any violation.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "sub"], "verify_exp": False, "verify_iat": False},
        )
    except jwt.InvalidTokenError as exc:
        raise InvalidToken(f"Invalid token: {exc}") from exc

    if not isinstance(decoded.get("exp"), (int, float)):
        raise InvalidToken("Token expiry missing")
    if verify_expiry and is_expired(decoded, now):
        raise InvalidToken("Token expired")
    if decoded.get("type") != expected_type:
        raise InvalidToken("Wrong token type")
    sub = decoded.get("sub")
    if not isinstance(sub, str) or not sub:
        raise InvalidToken("Token subject missing")
    return decoded


def is_expired(claims: Dict[str, Any], now: datetime) -> bool:
    return now.timestamp() > claims["exp"]
