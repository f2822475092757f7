"""
Alembic environment for the MowerManager schema.

The target database is whatever db.get_db() would open: PostgreSQL when
DATABASE_URL is set, otherwise the SQLite file under DATA_DIR. Migrations
are raw SQL, so there is no declarative metadata to autogenerate from.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from db import sqlalchemy_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = None

# alembic.ini only carries a placeholder URL
config.set_main_option("sqlalchemy.url", sqlalchemy_url())


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with engine.connect() as connection:
        # Batch mode rebuilds tables on SQLite, which lacks most ALTER forms
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
