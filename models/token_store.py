"""
Refresh token persistence on top of DBStorage.

Every revoke is a single conditional UPDATE so concurrent callers see
an atomic flip of the revoked flag. SQLAlchemy failures surface as
PersistenceError, lookup misses as NotFoundError.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models.refresh_token import RefreshToken
from utils.exceptions import NotFoundError, PersistenceError


class RefreshTokenStore:
    def __init__(self, storage):
        self._storage = storage

    @property
    def session(self):
        return self._storage.get_session()

    def create(self, record: RefreshToken) -> RefreshToken:
        try:
            self._storage.new(record)
            self._storage.save()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to store refresh token: {exc}") from exc
        return record

    def find_by_token_and_user(self, token: str, user_id: str) -> RefreshToken:
        try:
            record = self.session.execute(
                select(RefreshToken).where(
                    RefreshToken.token == token,
                    RefreshToken.user_id == user_id,
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self._storage.rollback()
            raise PersistenceError(f"failed to fetch refresh token: {exc}") from exc
        if record is None:
            raise NotFoundError("refresh token not found")
        return record

    def revoke_all_for_user(self, user_id: str) -> int:
        """Flip every live token of the user; returns how many were flipped."""
        return self._update_revoked(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked.is_(False),
        )

    def revoke_by_id(self, record_id: str) -> bool:
        """
        True if this call revoked the record, False if it already was.
        Raises NotFoundError when no record has that id.
        """
        flipped = self._update_revoked(
            RefreshToken.id == record_id,
            RefreshToken.revoked.is_(False),
        )
        if flipped:
            return True
        try:
            exists = self._storage.get(RefreshToken, record_id) is not None
        except SQLAlchemyError as exc:
            self._storage.rollback()
            raise PersistenceError(f"failed to fetch refresh token: {exc}") from exc
        if not exists:
            raise NotFoundError("refresh token not found")
        return False

    def delete_expired(self, now: datetime) -> int:
        """Delete records whose expires_at is strictly before now, revoked or not."""
        try:
            result = (
                self.session.query(RefreshToken)
                .filter(RefreshToken.expires_at < now)
                .delete(synchronize_session="fetch")
            )
            self._storage.save()
        except SQLAlchemyError as exc:
            self._storage.rollback()
            raise PersistenceError(f"failed to delete expired refresh tokens: {exc}") from exc
        return result

    def _update_revoked(self, *criteria) -> int:
        try:
            result = (
                self.session.query(RefreshToken)
                .filter(*criteria)
                .update({RefreshToken.revoked: True}, synchronize_session="fetch")
            )
            self._storage.save()
        except SQLAlchemyError as exc:
            self._storage.rollback()
            raise PersistenceError(f"failed to revoke refresh token: {exc}") from exc
        return result
