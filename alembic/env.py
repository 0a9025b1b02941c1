"""
Alembic environment for the ESG pipeline schema.

The database URL is resolved in this order:

1) ``alembic -x db_url=...`` for one-off targets
2) ``sqlalchemy.url`` in alembic.ini, when filled in
3) the application's own resolution (DATABASE_URL, CLOUD_DATABASE_URL,
   LOCAL_DATABASE_URL)
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import db.models  # noqa: F401 - registers every table on Base.metadata
from db.base import Base
from db.config import normalize_postgres_url, resolve_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    ini_url = (config.get_main_option("sqlalchemy.url") or "").strip()
    url = normalize_postgres_url(override or ini_url) if (override or ini_url) else resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Migrations target PostgreSQL only.")
    return url


def _skip_empty_revisions(migration_context, revision, directives) -> None:
    """Do not write an autogenerate revision when nothing changed."""
    if getattr(config.cmd_opts, "autogenerate", False) and directives:
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            process_revision_directives=_skip_empty_revisions,
            **_COMPARE_OPTIONS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
