# apitokens/services/issuance.py
"""The issuance command, independent of the boundary that calls it."""
from __future__ import annotations

from apitokens.core.errors import IdentityNotFoundError
from apitokens.core.expiration import parse_expiration
from apitokens.services.identity_store import IdentityStore, normalize_handle
from apitokens.services.token_issuer import IssuedToken, TokenIssuer


async def issue_token(
    handle: str,
    expires: str | None = None,
    name: str | None = None,
    *,
    identities: IdentityStore,
    issuer: TokenIssuer,
) -> IssuedToken:
    handle = normalize_handle(handle)
    # reject a bad expiration before the identity is created
    parse_expiration(expires)
    identity = await identities.resolve(handle)
    return await issuer.rotate(identity, expires, name=name)


async def revoke_tokens(handle: str, *, identities: IdentityStore, issuer: TokenIssuer) -> int:
    identity = await identities.find(handle)
    if identity is None:
        raise IdentityNotFoundError(handle)
    return await issuer.revoke(identity)


async def describe_token(handle: str, *, identities: IdentityStore, issuer: TokenIssuer) -> dict | None:
    identity = await identities.find(handle)
    if identity is None:
        raise IdentityNotFoundError(handle)
    token = await issuer.current(identity)
    if token is None:
        return None
    return {
        "identityHandle": identity.handle,
        "tokenId": token.id,
        "name": token.name,
        "expiresAt": token.expires_at.isoformat() if token.expires_at else None,
        "issuedAt": token.issued_at.isoformat(),
    }
