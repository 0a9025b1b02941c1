from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.api.error_handlers import register_error_handlers

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - Only PostgreSQL URLs are permitted.
    - ESG_RATIO_MISSING_DENOMINATOR, when set, must be one|zero|skip.
    - AUDIT_VERIFICATION_HOUR / _MINUTE, when set, must be valid clock values.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL. SQLite is not permitted."
        )
    elif database_url and not database_url.startswith(("postgres://", "postgresql")):
        errors.append("DATABASE_URL must be a PostgreSQL URL; SQLite is not permitted.")

    # --- Ratio policy ---------------------------------------------------
    policy = os.getenv("ESG_RATIO_MISSING_DENOMINATOR")
    if policy is not None and policy.strip().lower() not in {"one", "zero", "skip"}:
        errors.append(
            f"ESG_RATIO_MISSING_DENOMINATOR='{policy.strip()}' is not valid. "
            "Allowed values: ['one', 'skip', 'zero']."
        )

    # --- Scheduler clock ------------------------------------------------
    for name, upper in (("AUDIT_VERIFICATION_HOUR", 23), ("AUDIT_VERIFICATION_MINUTE", 59)):
        raw = os.getenv(name)
        if raw is None:
            continue
        if not raw.strip().isdigit() or not 0 <= int(raw.strip()) <= upper:
            errors.append(f"{name}='{raw.strip()}' must be an integer between 0 and {upper}.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Fail startup when the database cannot answer ``SELECT 1``."""
    from sqlalchemy import text

    from db.session import get_engine

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


AUDIT_TRIGGERS = frozenset({"esg_ingestion_audit_no_update", "esg_ingestion_audit_no_delete"})


def _check_schema() -> None:
    """
    Refuse to serve until migrations have been applied.

    Every ORM table must exist, and the audit table must carry its
    append-only triggers.  Nothing is created here; run
    ``alembic upgrade head``.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text

    import db.models  # noqa: F401 - registers all ORM models on Base.metadata
    from db.base import Base
    from db.models.audit_entry import AuditEntry
    from db.session import get_engine

    engine = get_engine()
    problems: list[str] = []

    missing_tables = set(Base.metadata.tables) - set(sa_inspect(engine).get_table_names())
    if missing_tables:
        problems.append("missing tables: " + ", ".join(sorted(missing_tables)))
    else:
        with engine.connect() as connection:
            installed = set(
                connection.execute(
                    text(
                        "SELECT tgname FROM pg_trigger "
                        "WHERE tgrelid = CAST(:table AS regclass) AND NOT tgisinternal"
                    ),
                    {"table": AuditEntry.__tablename__},
                ).scalars()
            )
        missing_triggers = AUDIT_TRIGGERS - installed
        if missing_triggers:
            problems.append("missing audit triggers: " + ", ".join(sorted(missing_triggers)))

    if problems:
        logger.critical("Schema check failed (%s). Run 'alembic upgrade head' and restart.", "; ".join(problems))
        raise RuntimeError("Schema mismatch: " + "; ".join(problems))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Check the database, then run the audit verification scheduler for the app's lifetime."""
    _check_db()
    _check_schema()
    logger.info("Database connectivity and schema confirmed")

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Scheduler started with %d job(s)", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler shut down")


def include_routers(application: FastAPI) -> None:
    from app.api.routers import (
        audit_router,
        kpi_router,
        lineage_router,
        mapping_router,
        validation_router,
        workflow_router,
    )

    application.include_router(mapping_router)
    application.include_router(kpi_router)
    application.include_router(validation_router)
    application.include_router(lineage_router)
    application.include_router(audit_router)
    application.include_router(workflow_router)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="ESG Ingestion Core API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    register_error_handlers(application)
    include_routers(application)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
