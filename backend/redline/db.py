from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from .models import Base


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async SQLAlchemy engine, making sure the SQLite folder exists."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(
        database_url,
        echo=False,  # True if you want to see SQL
        future=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create the credential and profile tables if they are missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
