"""
Centralized configuration with environment variable overrides.

Scheduling defaults, travel buffers, and anti-spam thresholds are all
configurable here. Nothing is hardcoded in engine or gate logic.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ScheduleConfig:
    """Calendar, slot and reservation settings."""

    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "America/New_York")
    fallback_day_start: str = os.getenv("FALLBACK_DAY_START", "09:00")
    fallback_day_end: str = os.getenv("FALLBACK_DAY_END", "20:00")
    slot_granularity_minutes: int = _safe_int("SLOT_GRANULARITY_MINUTES", "15")
    pending_ttl_minutes: int = _safe_int("PENDING_TTL_MINUTES", "30")
    suggested_times_limit: int = _safe_int("SUGGESTED_TIMES_LIMIT", "3")


@dataclass(frozen=True)
class TravelConfig:
    """Travel-time lookup and buffer settings."""

    default_travel_minutes: int = _safe_int("DEFAULT_TRAVEL_MINUTES", "15")
    grace_buffer_minutes: int = _safe_int("GRACE_BUFFER_MINUTES", "5")
    lookup_timeout_sec: float = _safe_float("TRAVEL_LOOKUP_TIMEOUT", "3.0")
    lookup_workers: int = _safe_int("TRAVEL_LOOKUP_WORKERS", "4")


@dataclass(frozen=True)
class AntiSpamConfig:
    """Rate limiting thresholds for public booking requests."""

    max_requests_per_window: int = _safe_int("MAX_BOOKING_REQUESTS", "3")
    window_hours: int = _safe_int("RATE_LIMIT_WINDOW_HOURS", "24")
    request_log_size: int = _safe_int("REQUEST_LOG_SIZE", "1000")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    travel: TravelConfig = field(default_factory=TravelConfig)
    antispam: AntiSpamConfig = field(default_factory=AntiSpamConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-gate")


def _parse_clock(env_name: str, value: str) -> datetime:
    try:
        return datetime.strptime(value, "%H:%M")
    except ValueError:
        raise ValueError(f"{env_name} must be HH:MM, got {value!r}") from None


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    start = _parse_clock("FALLBACK_DAY_START", config.schedule.fallback_day_start)
    end = _parse_clock("FALLBACK_DAY_END", config.schedule.fallback_day_end)
    if start >= end:
        raise ValueError(
            "FALLBACK_DAY_START must be before FALLBACK_DAY_END, "
            f"got {config.schedule.fallback_day_start}-{config.schedule.fallback_day_end}"
        )
    if config.schedule.slot_granularity_minutes < 1:
        raise ValueError(
            "SLOT_GRANULARITY_MINUTES must be >= 1, "
            f"got {config.schedule.slot_granularity_minutes}"
        )
    if config.schedule.pending_ttl_minutes < 1:
        raise ValueError(
            f"PENDING_TTL_MINUTES must be >= 1, got {config.schedule.pending_ttl_minutes}"
        )
    if config.schedule.suggested_times_limit < 0:
        raise ValueError(
            "SUGGESTED_TIMES_LIMIT must be >= 0, "
            f"got {config.schedule.suggested_times_limit}"
        )

    for name, value in [
        ("DEFAULT_TRAVEL_MINUTES", config.travel.default_travel_minutes),
        ("GRACE_BUFFER_MINUTES", config.travel.grace_buffer_minutes),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    if config.travel.lookup_timeout_sec <= 0:
        raise ValueError(
            f"TRAVEL_LOOKUP_TIMEOUT must be > 0, got {config.travel.lookup_timeout_sec}"
        )
    if config.travel.lookup_workers < 1:
        raise ValueError(
            f"TRAVEL_LOOKUP_WORKERS must be >= 1, got {config.travel.lookup_workers}"
        )
    if config.antispam.max_requests_per_window < 1:
        raise ValueError(
            "MAX_BOOKING_REQUESTS must be >= 1, "
            f"got {config.antispam.max_requests_per_window}"
        )
    if config.antispam.window_hours < 1:
        raise ValueError(
            f"RATE_LIMIT_WINDOW_HOURS must be >= 1, got {config.antispam.window_hours}"
        )
    if config.antispam.request_log_size < 1:
        raise ValueError(
            f"REQUEST_LOG_SIZE must be >= 1, got {config.antispam.request_log_size}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
