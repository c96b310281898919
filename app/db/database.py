"""
Database Connection
===================
Async connection using SQLAlchemy (aiosqlite locally, asyncpg in production)
"""

import logging
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.config import get_settings
from app.db.models import Base


logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.echo_sql,
    future=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session():
    """One session, one transaction per request: commit on success, roll back on error"""
    async with async_session_factory() as session:
        async with session.begin():
            yield session


def _ensure_sqlite_dir(url) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(bind=None):
    """Create all tables (for development only - use migrations in production)"""
    bind = bind or engine
    _ensure_sqlite_dir(bind.url)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
