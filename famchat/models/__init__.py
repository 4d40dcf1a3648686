from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool
from ..config import DATABASE_URL

engine_kwargs = {'future': True, 'echo': False}
if DATABASE_URL.startswith('sqlite'):
    # aiosqlite connections are bound to the loop that opened them
    engine_kwargs['poolclass'] = NullPool

engine = create_async_engine(DATABASE_URL, **engine_kwargs)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# Import models to register tables
from .users import User  # noqa: F401,E402
from .contacts import Contact  # noqa: F401,E402
from .messages import Message  # noqa: F401,E402
