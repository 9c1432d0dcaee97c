# tests/conftest.py
import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# --- make 'apitokens' importable from the repo root ---
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _prepare_test_env() -> None:
    tmp = (ROOT / ".pytest_tmp").absolute()
    tmp.mkdir(exist_ok=True)

    # throwaway SQLite database for the HTTP tests
    db_path = tmp / "test.sqlite3"
    if db_path.exists():
        db_path.unlink()
    os.environ["DB_URL"] = f"sqlite+aiosqlite:///{db_path.as_posix()}"

    # cheap scrypt so tests stay fast
    os.environ["SCRYPT_COST"] = "1024"
    os.environ["TOKEN_PREFIX"] = ""


_prepare_test_env()


@pytest.fixture(scope="session")
def client():
    """
    Test client against a temporary SQLite database in .pytest_tmp/.
    The 'with' block runs the lifespan, which creates the tables.
    """
    from apitokens.main import app
    with TestClient(app) as c:
        yield c


@dataclass
class Harness:
    session_factory: object
    identities: object
    issuer: object

    async def token_count(self, identity_id: int | None = None) -> int:
        from sqlalchemy import func, select
        from apitokens.db.models import AccessToken

        stmt = select(func.count()).select_from(AccessToken)
        if identity_id is not None:
            stmt = stmt.where(AccessToken.identity_id == identity_id)
        async with self.session_factory() as s:
            return (await s.execute(stmt)).scalar_one()

    async def identity_count(self) -> int:
        from sqlalchemy import func, select
        from apitokens.db.models import Identity

        async with self.session_factory() as s:
            return (await s.execute(select(func.count()).select_from(Identity))).scalar_one()


@pytest.fixture
def run_services(tmp_path):
    """
    Runs ``scenario(harness)`` in a fresh event loop against its own SQLite
    file, with the tables created and the engine disposed afterwards.
    """
    from apitokens.db.session import create_tables, make_sessionmaker
    from apitokens.services.identity_store import IdentityStore
    from apitokens.services.token_issuer import TokenIssuer

    url = f"sqlite+aiosqlite:///{(tmp_path / 'services.sqlite3').as_posix()}"

    def _run(scenario, **issuer_kwargs):
        async def _main():
            engine, factory = make_sessionmaker(url)
            try:
                await create_tables(engine)
                h = Harness(factory, IdentityStore(factory), TokenIssuer(factory, **issuer_kwargs))
                return await scenario(h)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run
