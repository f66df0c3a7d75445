"""Configuration for visitrack."""

from visitrack.config.visitrack_config import (
    DEFAULT_SWEEP_INTERVALS,
    TEST_VISITRACK_CONFIG,
    RetentionAction,
    VisitrackConfig,
    load_config,
)

__all__ = [
    "DEFAULT_SWEEP_INTERVALS",
    "TEST_VISITRACK_CONFIG",
    "RetentionAction",
    "VisitrackConfig",
    "load_config",
]
