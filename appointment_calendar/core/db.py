from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from appointment_calendar.core.config import settings


def to_async_url(database_url: str) -> str:
    """Map a plain PostgreSQL URL onto asyncpg.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so
    they are stripped; SSL is enabled via connect_args instead. Other URLs
    (e.g. sqlite+aiosqlite) pass through unchanged.
    """
    parsed = urlparse(database_url)
    if parsed.scheme != "postgresql":
        return database_url
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.pop("sslmode", None)
    query.pop("channel_binding", None)
    new_query = urlencode(query, doseq=True)
    return urlunparse(("postgresql+asyncpg", parsed.netloc, parsed.path, parsed.params, new_query, parsed.fragment))


def create_engine_for(database_url: str) -> AsyncEngine:
    async_url = to_async_url(database_url)
    if async_url.startswith("postgresql+asyncpg"):
        return create_async_engine(
            async_url,
            echo=settings.env == "development",
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            connect_args={"ssl": True},
        )
    return create_async_engine(async_url, echo=settings.env == "development")


def make_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = create_engine_for(settings.database_url)
async_session_maker = make_session_maker(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    # Register every table on the metadata before create_all
    import appointment_calendar.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
