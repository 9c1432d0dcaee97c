# apitokens/services/identity_store.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from apitokens.core.crypto import SecretSource, hash_credential
from apitokens.core.errors import StorageError, ValidationError
from apitokens.db.models import Identity
from apitokens.db.session import SessionLocal

logger = logging.getLogger(__name__)

MAX_HANDLE_LENGTH = 255


def normalize_handle(handle: str | None) -> str:
    """Strip surrounding whitespace; reject empty or overlong handles."""
    value = (handle or "").strip()
    if not value:
        raise ValidationError("handle must not be empty")
    if len(value) > MAX_HANDLE_LENGTH:
        raise ValidationError(f"handle longer than {MAX_HANDLE_LENGTH} characters")
    return value


class IdentityStore:
    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        secrets: SecretSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._session_factory = session_factory
        self._secrets = secrets or SecretSource()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def find(self, handle: str) -> Identity | None:
        handle = normalize_handle(handle)
        try:
            async with self._session_factory() as s:
                res = await s.execute(select(Identity).where(Identity.handle == handle))
                return res.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("identity lookup failed for %s: %s", handle, e)
            raise StorageError(f"identity lookup failed: {e}") from e

    async def resolve(self, handle: str) -> Identity:
        """Return the identity for ``handle``, creating it on first sight.

        An existing record is returned untouched. A new one gets
        display_name = handle and a freshly generated credential secret of
        which only the scrypt hash is stored.
        """
        handle = normalize_handle(handle)
        try:
            async with self._session_factory() as s:
                res = await s.execute(select(Identity).where(Identity.handle == handle))
                found = res.scalar_one_or_none()
                if found is not None:
                    return found

                # scrypt is CPU-bound, keep it off the event loop
                credential_secret = await asyncio.to_thread(
                    hash_credential, self._secrets.new_credential_secret()
                )
                identity = Identity(
                    handle=handle,
                    display_name=handle,
                    credential_secret=credential_secret,
                    created_at=self._clock(),
                )
                s.add(identity)
                try:
                    await s.commit()
                except IntegrityError:
                    # another caller created the same handle first
                    await s.rollback()
                    res = await s.execute(select(Identity).where(Identity.handle == handle))
                    return res.scalar_one()

                logger.info("created identity %s (id=%s)", handle, identity.id)
                return identity
        except SQLAlchemyError as e:
            logger.error("identity resolution failed for %s: %s", handle, e)
            raise StorageError(f"identity resolution failed: {e}") from e
