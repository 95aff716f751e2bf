"""
Token service: mints, verifies, rotates and revokes session credentials.

Access tokens are stateless JWTs. Refresh tokens are JWTs too, but every
issued one is also recorded in the RefreshTokenStore: the signature check
rejects garbage before any database round-trip, and the stored record is
what makes single-use rotation and mass revocation possible.

The service keeps no mutable state of its own and is safe to share across
requests.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from models.refresh_token import RefreshToken
from utils.exceptions import InvalidToken, NotFoundError, PersistenceError, RevokedToken
from utils.security import encode_token, decode_token, is_expired

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    def __init__(
        self,
        store,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not access_secret:
            raise ValueError("JWT access secret must not be empty")
        if not refresh_secret:
            raise ValueError("JWT refresh secret must not be empty")
        self.store = store
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return _as_utc(self._clock())

    @classmethod
    def from_config(cls, config, store, clock=None) -> "TokenService":
        return cls(
            store,
            access_secret=config.get("JWT_ACCESS_SECRET"),
            refresh_secret=config.get("JWT_REFRESH_SECRET"),
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            clock=clock,
        )

    def issue_token_pair(self, user_id: str) -> TokenPair:
        """
        Sign a new access/refresh pair for user_id and record the refresh token.
        Raises PersistenceError if the record cannot be written; no pair is
        handed out in that case since an unrecorded refresh token can never
        be redeemed.
        """
        now = self.now()
        access_token = encode_token(
            user_id, ACCESS, now + self.access_ttl, self.access_secret, self.algorithm
        )
        # whole seconds so the stored expiry matches the exp claim exactly
        refresh_expires = (now + self.refresh_ttl).replace(microsecond=0)
        refresh_token = encode_token(
            user_id, REFRESH, refresh_expires, self.refresh_secret, self.algorithm
        )

        self.store.create(
            RefreshToken(
                user_id=user_id,
                token=refresh_token,
                expires_at=refresh_expires,
                created_at=now,
                revoked=False,
            )
        )
        logger.debug("issued token pair for user %s", user_id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def validate_access_token(self, token: str) -> str:
        """Return the subject of a valid access token, else raise InvalidToken."""
        claims = decode_token(token, self.access_secret, self.algorithm, ACCESS, self.now())
        return claims["sub"]

    def revoke_all_for_user(self, user_id: str) -> None:
        count = self.store.revoke_all_for_user(user_id)
        logger.info("revoked %d refresh token(s) for user %s", count, user_id)

    def rotate_refresh_token(self, token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair. Each refresh token works once.

        - bad signature / wrong type / no subject: InvalidToken
        - expired: its record (if still stored) is revoked, then InvalidToken
        - no stored record (never issued or already cleaned up): InvalidToken
        - record already revoked: RevokedToken
        """
        now = self.now()
        claims = decode_token(
            token, self.refresh_secret, self.algorithm, REFRESH, now, verify_expiry=False
        )
        user_id = claims["sub"]

        if is_expired(claims, now):
            self._retire_expired(token, user_id)
            raise InvalidToken("Refresh token expired")

        try:
            record = self.store.find_by_token_and_user(token, user_id)
        except NotFoundError:
            raise InvalidToken("Unknown refresh token")

        if record.revoked:
            logger.warning("revoked refresh token presented again for user %s", user_id)
            raise RevokedToken()

        if now > _as_utc(record.expires_at):
            self._revoke_quietly(record.id)
            raise InvalidToken("Refresh token expired")

        try:
            won = self.store.revoke_by_id(record.id)
        except (PersistenceError, NotFoundError) as exc:
            # the old token is superseded by the new pair either way
            logger.warning("could not revoke rotated refresh token %s: %s", record.id, exc)
        else:
            if not won:
                logger.warning("concurrent rotation of refresh token %s for user %s", record.id, user_id)
                raise RevokedToken()

        logger.debug("rotated refresh token %s for user %s", record.id, user_id)
        return self.issue_token_pair(user_id)

    def cleanup_expired(self) -> int:
        """Delete every refresh token record past its expiry. Returns the count."""
        count = self.store.delete_expired(self.now())
        logger.info("deleted %d expired refresh token(s)", count)
        return count

    def _retire_expired(self, token: str, user_id: str) -> None:
        try:
            record = self.store.find_by_token_and_user(token, user_id)
        except NotFoundError:
            return
        except PersistenceError as exc:
            logger.warning("could not look up expired refresh token for user %s: %s", user_id, exc)
            return
        if not record.revoked:
            self._revoke_quietly(record.id)

    def _revoke_quietly(self, record_id: str) -> None:
        try:
            self.store.revoke_by_id(record_id)
        except (PersistenceError, NotFoundError) as exc:
            logger.warning("could not revoke expired refresh token %s: %s", record_id, exc)
