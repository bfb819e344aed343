from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import settings

_ASYNC_DRIVERS = {"postgresql": "postgresql+asyncpg", "sqlite": "sqlite+aiosqlite"}


def async_database_url(url: str) -> URL:
    """Rewrite a plain DSN to its async driver.

    asyncpg does not accept psycopg params like sslmode/channel_binding, so those are
    stripped; SSL is enabled via connect_args instead.
    """
    parsed = make_url(url)
    drivername = _ASYNC_DRIVERS.get(parsed.drivername, parsed.drivername)
    parsed = parsed.set(drivername=drivername)
    if parsed.get_backend_name() == "postgresql":
        parsed = parsed.difference_update_query(["sslmode", "channel_binding"])
    return parsed


def sync_database_url(url: str | None = None) -> str:
    """Driver-less URL for Alembic, which runs migrations synchronously."""
    parsed = make_url(url or settings.database_url)
    return parsed.set(drivername=parsed.get_backend_name()).render_as_string(hide_password=False)


def build_engine(url: str, echo: bool = False, ssl: bool = False) -> AsyncEngine:
    async_url = async_database_url(url)
    if async_url.get_backend_name() == "sqlite":
        return create_async_engine(async_url, echo=echo)
    return create_async_engine(
        async_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args={"ssl": True} if ssl else {},
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(
    settings.database_url,
    echo=settings.env == "development",
    ssl=settings.database_ssl,
)
async_session_maker = build_session_maker(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if using create_all; prefer Alembic in production."""
    import app.models  # noqa: F401 - register tables

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
