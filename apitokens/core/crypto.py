# apitokens/core/crypto.py
from __future__ import annotations

import base64
import os
import secrets
import string
import zlib
from typing import Callable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from apitokens.core.config import settings

TOKEN_ALPHABET = string.ascii_letters + string.digits

_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_LENGTH = 32


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


class SecretSource:
    """Random source for token and credential secrets.

    ``choice`` defaults to ``secrets.choice``; tests may pass their own.
    """

    def __init__(
        self,
        length: int | None = None,
        prefix: str | None = None,
        choice: Callable[[str], str] = secrets.choice,
    ):
        self.length = length or settings.token_entropy_length
        self.prefix = settings.token_prefix if prefix is None else prefix
        self._choice = choice

    def entropy(self) -> str:
        return "".join(self._choice(TOKEN_ALPHABET) for _ in range(self.length))

    def new_token_secret(self) -> str:
        """Prefix + entropy + crc32 of the entropy, e.g. ``abc...xyz0f3a9c1d``.

        The checksum lets secret scanners recognise a token without a lookup.
        """
        entropy = self.entropy()
        checksum = format(zlib.crc32(entropy.encode()) & 0xFFFFFFFF, "08x")
        return f"{self.prefix}{entropy}{checksum}"

    def new_credential_secret(self) -> str:
        return self.entropy()


def digest_token(secret: str) -> str:
    h = hashes.Hash(hashes.SHA256())
    h.update(secret.encode("utf-8"))
    return h.finalize().hex()


def hash_credential(secret: str, cost: int | None = None) -> str:
    """One-way scrypt hash, encoded as ``scrypt$n$r$p$salt$hash``."""
    n = cost or settings.scrypt_cost
    salt = os.urandom(16)
    kdf = Scrypt(salt=salt, length=_SCRYPT_LENGTH, n=n, r=_SCRYPT_R, p=_SCRYPT_P)
    derived = kdf.derive(secret.encode("utf-8"))
    return f"scrypt${n}${_SCRYPT_R}${_SCRYPT_P}${_b64(salt)}${_b64(derived)}"
