import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from cekspek.config import DATABASE_URL
from cekspek.models import Base

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    engine = create_async_engine(url, echo=False)
    if engine.dialect.name == "sqlite":
        # SQLite ignores foreign keys unless asked per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, expire_on_commit=False)


engine = build_engine()
AsyncSessionLocal = build_sessionmaker(engine)


async def init_db(bind: AsyncEngine = engine):
    """Create missing tables"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def get_session():
    """FastAPI dependency: one session per request"""
    async with AsyncSessionLocal() as session:
        yield session
