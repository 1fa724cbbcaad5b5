from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

def import_models():
    # every mapped class must be registered on Base.metadata before create_all
    from curalink.modules.users import models as _users  # noqa: F401
    from curalink.modules.connections import models as _connections  # noqa: F401
    from curalink.modules.follows import models as _follows  # noqa: F401
    from curalink.modules.meetings import models as _meetings  # noqa: F401
    from curalink.modules.notifications import models as _notifications  # noqa: F401
    from curalink.modules.events import outbox as _outbox  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode tables are created here; otherwise migrations own the schema.
    if settings.DB_MANAGE.lower() == "create_all":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
