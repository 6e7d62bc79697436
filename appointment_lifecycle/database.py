from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from appointment_lifecycle.config import settings


def create_engine_for(database_url: str) -> AsyncEngine:
    """Create an async engine for the given database URL."""
    # Set echo=False to disable SQL query logging (too verbose for development)
    return create_async_engine(
        database_url,
        echo=False,
        future=True,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay usable after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async engine (for FastAPI routes and background sweeps)
engine = create_engine_for(settings.database_url)

# Create async session factory
AsyncSessionLocal = create_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


async def init_db(bind: AsyncEngine = engine):
    """Initialize database tables."""
    # Register every model on the metadata before creating tables
    import appointment_lifecycle.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = engine):
    """Close database connections."""
    await bind.dispose()
