import asyncio
from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from famchat.config import DATABASE_URL
from famchat.models import Base

config = context.config
target_metadata = Base.metadata


def database_url() -> str:
    # an explicit sqlalchemy.url in alembic.ini wins over the environment
    return config.get_main_option('sqlalchemy.url') or DATABASE_URL


def configure_options(url: str) -> dict:
    # sqlite cannot ALTER constraints in place
    return {
        'target_metadata': target_metadata,
        'compare_type': True,
        'render_as_batch': url.startswith('sqlite'),
    }


def run_migrations_offline():
    """Emit the migration SQL to stdout instead of running it."""
    url = database_url()
    context.configure(url=url, literal_binds=True, dialect_opts={'paramstyle': 'named'}, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection, url):
    context.configure(connection=connection, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    url = database_url()
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations, url)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
