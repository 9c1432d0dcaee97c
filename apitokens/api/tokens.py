# apitokens/api/tokens.py
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from apitokens.services.identity_store import IdentityStore
from apitokens.services.issuance import describe_token, issue_token, revoke_tokens
from apitokens.services.token_issuer import TokenIssuer

router = APIRouter()

# one issuer per process so rotations share the per-identity locks
identities = IdentityStore()
issuer = TokenIssuer()


class IssueInput(BaseModel):
    handle: str
    expires: str | None = None
    name: str | None = None


class RevokeInput(BaseModel):
    handle: str


@router.post("/issue")
async def issue(body: IssueInput):
    issued = await issue_token(
        body.handle, body.expires, body.name, identities=identities, issuer=issuer
    )
    return issued.as_payload()


@router.post("/revoke")
async def revoke(body: RevokeInput):
    revoked = await revoke_tokens(body.handle, identities=identities, issuer=issuer)
    return {"ok": True, "handle": body.handle.strip(), "revoked": revoked}


@router.get("/detail")
async def detail(handle: str = Query(...)):
    info = await describe_token(handle, identities=identities, issuer=issuer)
    if info is None:
        raise HTTPException(status_code=404, detail="no active token")
    return info
