# storefront/database.py
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

from .config import DATABASE_URL, SQL_ECHO


def make_engine(url: str = DATABASE_URL):
    # SQLite connections are cheap and must not be shared between event loops
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=SQL_ECHO, future=True, poolclass=NullPool)
    return create_async_engine(url, echo=SQL_ECHO, future=True)


# Create engine
engine = make_engine()

# Create session factory
async_session_maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

# Base declarative
Base = declarative_base()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
