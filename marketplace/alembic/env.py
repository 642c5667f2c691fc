from alembic import context
from sqlmodel import SQLModel

from marketplace.core.config import settings
from marketplace.core.db import engine
import marketplace.models  # noqa: F401  registers tables on SQLModel.metadata

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=str(settings.SQLALCHEMY_DATABASE_URI),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
