# apitokens/services/token_issuer.py
from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from apitokens.core.config import settings
from apitokens.core.crypto import SecretSource, digest_token
from apitokens.core.errors import StorageError
from apitokens.core.expiration import parse_expiration
from apitokens.db.models import AccessToken, Identity
from apitokens.db.session import SessionLocal

logger = logging.getLogger(__name__)


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


@dataclass(frozen=True)
class IssuedToken:
    """Result of a rotation. ``token`` is the only copy of the plaintext."""

    identity: Identity
    token_id: int
    name: str
    token: str
    expires_at: datetime | None
    issued_at: datetime

    def as_payload(self) -> dict:
        return {
            "identityHandle": self.identity.handle,
            "token": self.token,
            "expiresAt": _iso(self.expires_at),
            "identityCreatedAt": _iso(self.identity.created_at),
            "tokenId": self.token_id,
            "name": self.name,
            "issuedAt": _iso(self.issued_at),
        }


class TokenIssuer:
    """Keeps at most one live token per identity.

    Rotation deletes every token of the identity and inserts the new one in
    a single transaction. Rotations for the same identity are also serialised
    in-process with a per-identity lock; the unique ``identity_id`` column
    covers writers in other processes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        secrets: SecretSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._session_factory = session_factory
        self._secrets = secrets or SecretSource()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, identity_id: int) -> asyncio.Lock:
        lock = self._locks.get(identity_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity_id] = lock
        return lock

    async def rotate(
        self,
        identity: Identity,
        expires_spec: str | None = None,
        name: str | None = None,
    ) -> IssuedToken:
        now = self._clock()
        # parse before touching storage: a bad value must leave the old token alone
        expires_at = parse_expiration(expires_spec, now=now)
        name = name or settings.default_token_name
        secret = self._secrets.new_token_secret()

        async with self._lock_for(identity.id):
            try:
                async with self._session_factory() as s:
                    async with s.begin():
                        res = await s.execute(
                            delete(AccessToken).where(AccessToken.identity_id == identity.id)
                        )
                        replaced = res.rowcount
                        token = AccessToken(
                            identity_id=identity.id,
                            name=name,
                            token_hash=digest_token(secret),
                            expires_at=expires_at,
                            issued_at=now,
                        )
                        s.add(token)
                        await s.flush()
                        token_id = token.id
            except SQLAlchemyError as e:
                logger.error("token rotation failed for %s: %s", identity.handle, e)
                raise StorageError(f"token rotation failed: {e}") from e

        logger.info(
            "issued token %s for %s (replaced %s, expires %s)",
            token_id, identity.handle, replaced, _iso(expires_at) or "never",
        )
        return IssuedToken(
            identity=identity,
            token_id=token_id,
            name=name,
            token=f"{token_id}|{secret}",
            expires_at=expires_at,
            issued_at=now,
        )

    async def revoke(self, identity: Identity) -> int:
        async with self._lock_for(identity.id):
            try:
                async with self._session_factory() as s:
                    async with s.begin():
                        res = await s.execute(
                            delete(AccessToken).where(AccessToken.identity_id == identity.id)
                        )
                        revoked = res.rowcount
            except SQLAlchemyError as e:
                logger.error("token revocation failed for %s: %s", identity.handle, e)
                raise StorageError(f"token revocation failed: {e}") from e
        logger.info("revoked %s token(s) for %s", revoked, identity.handle)
        return revoked

    async def current(self, identity: Identity) -> AccessToken | None:
        try:
            async with self._session_factory() as s:
                res = await s.execute(
                    select(AccessToken).where(AccessToken.identity_id == identity.id)
                )
                return res.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"token lookup failed: {e}") from e
