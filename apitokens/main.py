# apitokens/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from apitokens.api.tokens import router as tokens_router
from apitokens.core.config import configure_logging
from apitokens.core.errors import TokenIssuanceError, ValidationError
from apitokens.db.session import engine, create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_tables(engine)
    yield
    await engine.dispose()

app = FastAPI(title="API token issuer", lifespan=lifespan)

app.include_router(tokens_router, prefix="/tokens", tags=["tokens"])


@app.exception_handler(TokenIssuanceError)
async def issuance_error(request: Request, exc: TokenIssuanceError):
    return JSONResponse(status_code=exc.http_status, content={"error": exc.as_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    # malformed bodies (e.g. no handle) report the same kind as an empty handle
    fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
    err = ValidationError(f"invalid request: {fields}")
    return JSONResponse(status_code=err.http_status, content={"error": err.as_dict()})


@app.get("/")
def root():
    return {"ok": True}
