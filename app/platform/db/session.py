from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.platform.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them
        return {"poolclass": NullPool}
    options = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
    }
    if "+asyncpg" in url:
        options["connect_args"] = {
            "timeout": settings.DB_TIMEOUT_SECONDS,
            "command_timeout": settings.DB_TIMEOUT_SECONDS,
        }
    return options


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)

if settings.DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)


async def get_db():
    async with SessionLocal() as session:
        yield session
