import ssl as _ssl
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from shared.config import settings


def normalize_database_url(url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    url = url.replace("postgresql://", "postgresql+asyncpg://")
    # Strip sslmode param (asyncpg uses ssl connect_arg instead)
    return url.split("?sslmode=")[0] if "?sslmode=" in url else url


def build_engine(url: str, echo: bool = False):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    connect_args = {}
    if "supabase" in url:
        ssl_ctx = _ssl.create_default_context()
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = _ssl.CERT_NONE
        connect_args = {"ssl": ssl_ctx}

    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        connect_args=connect_args,
    )


engine = build_engine(
    settings.DATABASE_URL, echo=settings.LOG_LEVEL == "DEBUG"
) if settings.DATABASE_URL else None

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
) if engine else None


async def get_db():
    if async_session is None:
        raise RuntimeError("Database not configured. Set DATABASE_URL in .env")
    async with async_session() as session:
        yield session
