"""Composition root for wiring dependencies.

This package centralizes infrastructure-aware wiring so API and application
layers can depend on ports without importing infrastructure directly.
"""

from visitrack.bootstrap.container import (
    VisitrackContainer,
    build_container,
    get_container,
    reset_container,
    set_container,
)

__all__ = [
    "VisitrackContainer",
    "build_container",
    "get_container",
    "reset_container",
    "set_container",
]
