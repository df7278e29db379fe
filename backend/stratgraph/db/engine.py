from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from stratgraph.config.settings import settings
from stratgraph.db.base import Base
from stratgraph.utils.logger import get_logger

logger = get_logger("db.engine")


def _engine_kwargs(url: str) -> dict:
    # SQLite uses a static/single-connection pool; pool sizing only applies to server databases
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 0}


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine with pool settings suited to the database backend."""
    return create_async_engine(url, echo=settings.DEBUG, **_engine_kwargs(url))


# Create async engine
engine = build_engine(settings.DATABASE_URL)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


async def get_db():
    """
    Async generator that yields database sessions for FastAPI Depends.

    Usage in routes:
        async def list_strategies(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create any missing tables. Called once from the app lifespan."""
    # Register the models on Base.metadata before create_all
    import stratgraph.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized", tables=sorted(Base.metadata.tables))
