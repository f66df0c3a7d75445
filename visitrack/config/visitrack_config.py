"""Visitrack runtime configuration.

Read once at process start from environment variables and immutable
afterwards. Invalid values fall back to the defaults.

Environment Variables (Occupancy):
- MAX_OCCUPANCY: Facility capacity (default: 100)
- OCCUPANCY_ALERT_THRESHOLD: Rate that triggers the admin alert (default: 0.9)

Environment Variables (Visits):
- QR_TTL_HOURS: QR token validity after pre-registration (default: 24)
- NO_SHOW_GRACE_MINUTES: Grace after scheduled arrival before no-show (default: 120)
- VISITOR_RETENTION_DAYS: Visitor data retention (default: 2555)

Environment Variables (Audit):
- AUDIT_RETENTION_DAYS: Default audit retention (default: 2555)
- AUDIT_RETENTION_DAYS_<CATEGORY>: Per-category override, e.g. AUDIT_RETENTION_DAYS_SECURITY
- RETENTION_ACTION: anonymize or delete (default: anonymize)
- AUTO_PURGE_ENABLED: Schedule the retention sweep (default: false)

Environment Variables (Notifications):
- NOTIFICATION_RETRY_ATTEMPTS: Offline channel attempts (default: 3)
- NOTIFICATION_RETRY_BASE_DELAY: Backoff base in seconds (default: 1.0)
- CHANNEL_TIMEOUT_SECONDS: Per-attempt timeout (default: 10.0)
- NOTIFICATION_MAX_ESCALATIONS: Offline escalations run at once (default: 64)
- NOTIFICATION_GATEWAY_URL: HTTP gateway for e-mail/SMS (default: unset)
- REALTIME_RATE_LIMIT: Inbound events per type per window (default: 20)
- REALTIME_RATE_WINDOW_SECONDS: Rate window (default: 60)
- CONNECTION_SHARDS: Connection registry shards (default: 16)
- CONNECTION_QUEUE_SIZE: Per-connection push queue size (default: 100)
- OUTBOX_MAX_SIZE: Notification outbox capacity (default: 10000)

Environment Variables (Sweeps, seconds):
- SWEEP_OVERDUE_INTERVAL (default: 60)
- SWEEP_EXPIRED_PRE_REGISTRATIONS_INTERVAL (default: 300)
- SWEEP_NO_SHOWS_INTERVAL (default: 300)
- SWEEP_RETENTION_INTERVAL (default: 86400)
- SWEEP_CONSENT_EXPIRY_INTERVAL (default: 3600)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv

from visitrack.domain.models.audit_log_entry import AuditCategory


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return default


class RetentionAction(str, Enum):
    ANONYMIZE = "anonymize"
    DELETE = "delete"


def _get_retention_action_env(key: str, default: RetentionAction) -> RetentionAction:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return RetentionAction(value.strip().lower())
    except ValueError:
        return default


@dataclass(frozen=True)
class VisitrackConfig:
    """Process-wide configuration.

    Attributes:
        max_occupancy: Facility capacity used for the occupancy rate.
        occupancy_alert_threshold: Upward crossing raises an admin alert.
        qr_ttl_hours: QR token validity.
        no_show_grace_minutes: Grace after scheduled arrival.
        visitor_retention_days: Visitor data retention.
        audit_retention_days: Default audit retention.
        audit_retention_overrides: Per-category audit retention.
        retention_action: What the retention sweep does to expired entries.
        auto_purge_enabled: Whether the retention sweep is scheduled.
        notification_retry_attempts: Offline channel attempts per recipient.
        notification_retry_base_delay: Backoff base (seconds).
        channel_timeout_seconds: Per-attempt timeout.
        notification_max_escalations: Offline escalations allowed to run at once.
        notification_gateway_url: HTTP gateway for offline channels.
        realtime_rate_limit: Inbound events per type per window.
        realtime_rate_window_seconds: Rate limiting window.
        connection_shards: Number of connection registry shards.
        connection_queue_size: Per-connection push queue size.
        outbox_max_size: Notification outbox capacity.
        sweep_intervals: Seconds between runs, by sweep name.
    """

    max_occupancy: int = 100
    occupancy_alert_threshold: float = 0.9
    qr_ttl_hours: int = 24
    no_show_grace_minutes: int = 120
    visitor_retention_days: int = 2555
    audit_retention_days: int = 2555
    audit_retention_overrides: Mapping[AuditCategory, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    retention_action: RetentionAction = RetentionAction.ANONYMIZE
    auto_purge_enabled: bool = False
    notification_retry_attempts: int = 3
    notification_retry_base_delay: float = 1.0
    channel_timeout_seconds: float = 10.0
    notification_max_escalations: int = 64
    notification_gateway_url: str | None = None
    realtime_rate_limit: int = 20
    realtime_rate_window_seconds: int = 60
    connection_shards: int = 16
    connection_queue_size: int = 100
    outbox_max_size: int = 10_000
    sweep_intervals: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_SWEEP_INTERVALS))
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not 0 < self.occupancy_alert_threshold <= 1:
            raise ValueError(
                "occupancy_alert_threshold must be in (0, 1], "
                f"got {self.occupancy_alert_threshold}"
            )
        if self.qr_ttl_hours < 1:
            raise ValueError(f"qr_ttl_hours must be positive, got {self.qr_ttl_hours}")
        if self.notification_retry_attempts < 1:
            raise ValueError(
                "notification_retry_attempts must be at least 1, "
                f"got {self.notification_retry_attempts}"
            )
        if self.notification_max_escalations < 1:
            raise ValueError(
                "notification_max_escalations must be at least 1, "
                f"got {self.notification_max_escalations}"
            )
        if self.realtime_rate_limit < 1 or self.realtime_rate_window_seconds < 1:
            raise ValueError("realtime rate limit and window must be positive")
        if self.connection_shards < 1:
            raise ValueError(f"connection_shards must be positive, got {self.connection_shards}")
        if self.connection_queue_size < 1 or self.outbox_max_size < 1:
            raise ValueError("queue sizes must be positive")

    def audit_retention_days_for(self, category: AuditCategory) -> int:
        return self.audit_retention_overrides.get(category, self.audit_retention_days)

    @classmethod
    def from_environment(cls) -> VisitrackConfig:
        """Create config from environment variables with defaults."""
        overrides: dict[AuditCategory, int] = {}
        for category in AuditCategory:
            key = f"AUDIT_RETENTION_DAYS_{category.value.upper()}"
            if key in os.environ:
                days = _get_int_env(key, -1)
                if days > 0:
                    overrides[category] = days

        sweep_intervals = {
            name: _get_float_env(f"SWEEP_{name.upper()}_INTERVAL", default)
            for name, default in DEFAULT_SWEEP_INTERVALS.items()
        }

        return cls(
            max_occupancy=_get_int_env("MAX_OCCUPANCY", 100),
            occupancy_alert_threshold=_get_float_env("OCCUPANCY_ALERT_THRESHOLD", 0.9),
            qr_ttl_hours=_get_int_env("QR_TTL_HOURS", 24),
            no_show_grace_minutes=_get_int_env("NO_SHOW_GRACE_MINUTES", 120),
            visitor_retention_days=_get_int_env("VISITOR_RETENTION_DAYS", 2555),
            audit_retention_days=_get_int_env("AUDIT_RETENTION_DAYS", 2555),
            audit_retention_overrides=MappingProxyType(overrides),
            retention_action=_get_retention_action_env(
                "RETENTION_ACTION", RetentionAction.ANONYMIZE
            ),
            auto_purge_enabled=_get_bool_env("AUTO_PURGE_ENABLED", False),
            notification_retry_attempts=_get_int_env("NOTIFICATION_RETRY_ATTEMPTS", 3),
            notification_retry_base_delay=_get_float_env("NOTIFICATION_RETRY_BASE_DELAY", 1.0),
            channel_timeout_seconds=_get_float_env("CHANNEL_TIMEOUT_SECONDS", 10.0),
            notification_max_escalations=_get_int_env("NOTIFICATION_MAX_ESCALATIONS", 64),
            notification_gateway_url=os.environ.get("NOTIFICATION_GATEWAY_URL") or None,
            realtime_rate_limit=_get_int_env("REALTIME_RATE_LIMIT", 20),
            realtime_rate_window_seconds=_get_int_env("REALTIME_RATE_WINDOW_SECONDS", 60),
            connection_shards=_get_int_env("CONNECTION_SHARDS", 16),
            connection_queue_size=_get_int_env("CONNECTION_QUEUE_SIZE", 100),
            outbox_max_size=_get_int_env("OUTBOX_MAX_SIZE", 10_000),
            sweep_intervals=MappingProxyType(sweep_intervals),
        )


DEFAULT_SWEEP_INTERVALS: dict[str, float] = {
    "overdue": 60.0,
    "expired_pre_registrations": 300.0,
    "no_shows": 300.0,
    "retention": 86_400.0,
    "consent_expiry": 3_600.0,
}


def load_config(env_file: str | None = None) -> VisitrackConfig:
    """Load `.env` (if present) and build the config from the environment.

    Variables already set in the process environment win over the file.

    Args:
        env_file: Path to a dotenv file. Defaults to `.env` lookup.
    """
    load_dotenv(dotenv_path=env_file, override=False)
    return VisitrackConfig.from_environment()


# Testing config with short windows and no backoff delay
TEST_VISITRACK_CONFIG = VisitrackConfig(
    notification_retry_base_delay=0.0,
    channel_timeout_seconds=0.5,
    connection_shards=4,
    connection_queue_size=50,
    outbox_max_size=100,
)
