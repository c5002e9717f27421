from logging.config import fileConfig
from sqlalchemy import pool, create_engine
from alembic import context

# Base SQLAlchemy metadata, with every model module registered on it
from app.config import settings
from app.db.session import Base
import app.users.models  # noqa: F401
import app.events.models  # noqa: F401
import app.friends.models  # noqa: F401

target_metadata = Base.metadata

# Alembic config
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _sync_url() -> str:
    url = config.get_main_option("sqlalchemy.url") or settings.POSTGRES_URL
    # Migrations run on the sync driver (drop +asyncpg)
    return url.replace("postgresql+asyncpg://", "postgresql://")


def run_migrations_offline() -> None:
    context.configure(
        url=_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(
        _sync_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
