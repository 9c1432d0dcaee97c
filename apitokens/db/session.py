from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from apitokens.core.config import settings
from apitokens.db.models import Base

engine = create_async_engine(settings.db_url, echo=False)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


def make_sessionmaker(db_url: str) -> tuple[AsyncEngine, async_sessionmaker]:
    """Engine + session factory for a database other than the configured one."""
    eng = create_async_engine(db_url, echo=False)
    return eng, async_sessionmaker(eng, expire_on_commit=False)


async def create_tables(eng: AsyncEngine = engine) -> None:
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
