"""
app/scheduler/jobs.py

APScheduler-based scheduler for periodic audit chain verification.

Organization discovery
----------------------
Organizations are resolved at job runtime from the ``organizations`` table;
only active organizations are verified.

Schedule (all times UTC)
------------------------
  daily_audit_verification: AUDIT_VERIFICATION_HOUR:AUDIT_VERIFICATION_MINUTE
                             every day (default 02:00)

Lifecycle
---------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.audit_service import ChainVerifier
from db.repositories.organization_repository import OrganizationRepository
from db.session import SessionLocal, session_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Daily audit chain verification
# ---------------------------------------------------------------------------


def run_daily_audit_verification(
    session_factory: Callable[[], Session] | None = None,
) -> dict[str, int]:
    """
    Verify every active organization's audit chain.

    Commits per organization on success (the verification entry is part of
    the chain); rolls back on failure and continues with the next one.

    Returns
    -------
    dict[str, int]
        Counts of ``verified``, ``broken`` and ``errors``.
    """
    logger.info("Scheduler: daily_audit_verification starting")
    counts = {"verified": 0, "broken": 0, "errors": 0}

    with session_scope(session_factory or SessionLocal) as db:
        organization_ids = OrganizationRepository(db).list_active_ids()
        if not organization_ids:
            logger.warning("Scheduler: daily_audit_verification - no organizations found, skipping")
            return counts

        for organization_id in organization_ids:
            try:
                verification = ChainVerifier.from_session(db).verify(organization_id)
                db.commit()
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                counts["errors"] += 1
                logger.warning(
                    "Scheduler: daily_audit_verification failed organization=%s: %s",
                    organization_id,
                    exc,
                )
                continue

            if verification.is_valid:
                counts["verified"] += 1
            else:
                counts["broken"] += 1

    logger.info(
        "Scheduler: daily_audit_verification complete verified=%d broken=%d errors=%d",
        counts["verified"],
        counts["broken"],
        counts["errors"],
    )
    return counts


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.  When audit verification is disabled the
    scheduler carries no jobs.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.audit_verification_enabled:
        scheduler.add_job(
            run_daily_audit_verification,
            trigger="cron",
            hour=settings.audit_verification_hour,
            minute=settings.audit_verification_minute,
            id="daily_audit_verification",
            name="Daily audit chain verification",
            replace_existing=True,
            misfire_grace_time=3600,
        )
    else:
        logger.info("Scheduler: audit verification disabled by configuration")

    return scheduler
