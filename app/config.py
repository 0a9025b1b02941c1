"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from kpi.formulas import FormulaError, MissingDenominatorPolicy
from validation.checks import (
    DEFAULT_ENERGY_UNITS,
    DEFAULT_REQUIRED_METRIC_CODES,
    ValidationThresholds,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw_value, default)
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw_value, default)
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma-separated list; blank items are dropped.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class PipelineSettings:
    """
    Runtime settings for mapping, evaluation and validation.
    """

    mapping_quality_score: float = 0.85
    evaluation_quality_score: float = 0.9
    missing_denominator: MissingDenominatorPolicy = MissingDenominatorPolicy.ONE
    lineage_batch_size: int = 500
    thresholds: ValidationThresholds = ValidationThresholds()


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Daily audit chain verification schedule (UTC).
    """

    audit_verification_enabled: bool = True
    audit_verification_hour: int = 2
    audit_verification_minute: int = 0


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """
    Return cached pipeline settings from environment variables.

    Raises RuntimeError if ESG_RATIO_MISSING_DENOMINATOR is not a known policy.
    """

    raw_policy = _get_str_env("ESG_RATIO_MISSING_DENOMINATOR", MissingDenominatorPolicy.ONE.value)
    try:
        policy = MissingDenominatorPolicy.parse(raw_policy)
    except FormulaError as exc:
        raise RuntimeError(str(exc)) from exc

    return PipelineSettings(
        mapping_quality_score=_get_float_env("ESG_MAPPING_QUALITY_SCORE", 0.85),
        evaluation_quality_score=_get_float_env("ESG_EVALUATION_QUALITY_SCORE", 0.9),
        missing_denominator=policy,
        lineage_batch_size=max(1, _get_int_env("ESG_LINEAGE_BATCH_SIZE", 500)),
        thresholds=ValidationThresholds(
            required_metric_codes=_get_list_env(
                "ESG_REQUIRED_METRIC_CODES", DEFAULT_REQUIRED_METRIC_CODES
            ),
            energy_units=_get_list_env("ESG_ENERGY_UNITS", DEFAULT_ENERGY_UNITS),
            scope1_implausible_threshold=_get_float_env(
                "ESG_SCOPE1_IMPLAUSIBLE_THRESHOLD", 1_000_000.0
            ),
            temporal_change_threshold=max(
                0.0, _get_float_env("ESG_TEMPORAL_CHANGE_THRESHOLD", 0.3)
            ),
        ),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        audit_verification_enabled=_get_bool_env("AUDIT_VERIFICATION_ENABLED", True),
        audit_verification_hour=min(23, max(0, _get_int_env("AUDIT_VERIFICATION_HOUR", 2))),
        audit_verification_minute=min(59, max(0, _get_int_env("AUDIT_VERIFICATION_MINUTE", 0))),
    )
