"""Database engine, session factory, and the declarative base.

All estate collections live in a single schema.  Request handlers never
hold a session directly: they go through the record store
(`estatebook.store`), which opens one short-lived session per call so
independent reads can run concurrently.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from estatebook.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=10,
    max_overflow=5,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Declarative base for every estate table."""
    pass
