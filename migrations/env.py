"""Alembic migration runner for the Release Tracker schema.

The target database comes from ``alembic -x database_url=...`` when given,
otherwise from ``DATABASE_URL`` / settings, normalised to a sync driver.
SQLite migrations run in batch mode since SQLite cannot ALTER most columns.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from release_tracker.db import audit_models, models  # noqa: F401
from release_tracker.db.base import Base, get_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _target_url() -> str:
    return get_database_url(context.get_x_argument(as_dictionary=True).get("database_url"))


def _configure(database_url: str, **kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=database_url.startswith("sqlite"),
        **kwargs,
    )


def run_offline(url: str) -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(
        url,
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_offline(_target_url())
else:
    run_online(_target_url())
