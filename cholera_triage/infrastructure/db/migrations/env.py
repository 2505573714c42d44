from __future__ import annotations

from alembic import context
from sqlalchemy import engine_from_config, pool

from cholera_triage.config import settings
from cholera_triage.infrastructure.db.models_sqlalchemy import Base

config = context.config

# Prefer runtime database URL from settings; fallback to alembic.ini
if config.get_main_option("sqlalchemy.url") == "sqlite:///./data/dev.db":
    config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name and config.attributes.get("configure_logger", True):
    from logging.config import fileConfig

    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
