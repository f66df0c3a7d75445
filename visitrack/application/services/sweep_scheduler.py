"""Sweep scheduler.

Runs the periodic sweeps on independent intervals:

    overdue                     VisitRegistryService.sweep_overdue
    expired_pre_registrations   VisitRegistryService.sweep_expired_pre_registrations
    no_shows                    VisitRegistryService.sweep_no_shows
    consent_expiry              ConsentLedgerService.sweep_expired
    retention                   AuditTrailService.sweep_retention (AUTO_PURGE_ENABLED only)

Each sweep is single-flight: a trigger that arrives while the previous run
is still in flight is skipped and logged. Sweeps read the clock when they
run, so a late run simply catches up. Every run gets its own correlation ID
so its audit entries and the notifications it triggers can be tied together.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Optional

import structlog

from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.consent_ledger_service import ConsentLedgerService
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.config.visitrack_config import DEFAULT_SWEEP_INTERVALS, VisitrackConfig
from visitrack.infrastructure.monitoring.metrics import get_metrics_collector
from visitrack.infrastructure.observability.correlation import correlation_scope

SweepFn = Callable[[datetime], Awaitable[Any]]


class SweepScheduler:
    """Runs named sweeps on their intervals, one run per sweep at a time."""

    def __init__(
        self,
        registry: VisitRegistryService,
        consent_ledger: ConsentLedgerService,
        audit_trail: AuditTrailService,
        time_authority: TimeAuthorityProtocol,
        config: VisitrackConfig | None = None,
    ) -> None:
        config = config or VisitrackConfig()
        self._time = time_authority
        self._sweeps: dict[str, SweepFn] = {
            "overdue": registry.sweep_overdue,
            "expired_pre_registrations": registry.sweep_expired_pre_registrations,
            "no_shows": registry.sweep_no_shows,
            "consent_expiry": consent_ledger.sweep_expired,
        }
        if config.auto_purge_enabled:
            self._sweeps["retention"] = audit_trail.sweep_retention
        self._intervals: dict[str, float] = {
            name: config.sweep_intervals.get(name, DEFAULT_SWEEP_INTERVALS[name])
            for name in self._sweeps
        }
        self._in_flight: set[str] = set()
        self._running: bool = False
        self._tasks: list[asyncio.Task[None]] = []
        self._log = structlog.get_logger().bind(service="sweep_scheduler")

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sweep_names(self) -> list[str]:
        return list(self._sweeps)

    def interval_for(self, name: str) -> float:
        return self._intervals[name]

    def is_in_flight(self, name: str) -> bool:
        return name in self._in_flight

    async def start(self) -> None:
        """Start one loop per sweep. Idempotent."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._run_loop(name), name=f"sweep:{name}")
            for name in self._sweeps
        ]
        self._log.info("sweep_scheduler_started", sweeps=self.sweep_names)

    async def stop(self) -> None:
        """Cancel every sweep loop and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        self._log.info("sweep_scheduler_stopped")

    async def run_sweep(self, name: str) -> bool:
        """Run one sweep now unless it is already in flight.

        Returns:
            True if the sweep ran (successfully or not), False if skipped.

        Raises:
            KeyError: Unknown or unscheduled sweep name.
        """
        sweep = self._sweeps[name]
        metrics = get_metrics_collector()
        if name in self._in_flight:
            self._log.info("sweep_skipped_in_flight", sweep=name)
            metrics.increment_sweep_runs(name, "skipped")
            return False

        self._in_flight.add(name)
        started = self._time.monotonic()
        try:
            with correlation_scope():
                result = await sweep(self._time.now())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.error("sweep_failed", sweep=name, error=str(e))
            metrics.increment_sweep_runs(name, "error")
        else:
            self._log.debug(
                "sweep_completed",
                sweep=name,
                result=_summarize(result),
                elapsed_seconds=self._time.monotonic() - started,
            )
            metrics.increment_sweep_runs(name, "success")
        finally:
            self._in_flight.discard(name)
        return True

    async def _run_loop(self, name: str) -> None:
        interval = self._intervals[name]
        while self._running:
            await self.run_sweep(name)
            await asyncio.sleep(interval)


def _summarize(result: Any) -> Any:
    if isinstance(result, list):
        return len(result)
    return result
