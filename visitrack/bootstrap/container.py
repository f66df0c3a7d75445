"""Bootstrap wiring for visitrack services.

build_container() assembles every service from a VisitrackConfig. Ports
default to the in-memory stubs; offline channels use the HTTP gateway
adapter only when NOTIFICATION_GATEWAY_URL is configured.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial

from structlog import get_logger

from visitrack.application.ports.audit_repository import AuditRepositoryProtocol
from visitrack.application.ports.channel_sender import ChannelSenderProtocol
from visitrack.application.ports.consent_repository import ConsentRepositoryProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.ports.user_directory import UserDirectoryProtocol
from visitrack.application.ports.visit_repository import VisitRepositoryProtocol
from visitrack.application.ports.visitor_repository import VisitorRepositoryProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.connection_registry import ConnectionRegistry
from visitrack.application.services.consent_ledger_service import ConsentLedgerService
from visitrack.application.services.emergency_service import EmergencyService
from visitrack.application.services.event_rate_limiter import EventRateLimiter
from visitrack.application.services.notification_outbox import NotificationOutbox
from visitrack.application.services.notification_router import NotificationRouter
from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.application.services.realtime_gateway import RealtimeGateway
from visitrack.application.services.sweep_scheduler import SweepScheduler
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.config.visitrack_config import VisitrackConfig, load_config
from visitrack.domain.models.notification import OFFLINE_CHANNELS
from visitrack.infrastructure.adapters.http_channel_sender import HttpChannelSender
from visitrack.infrastructure.adapters.system_time_authority import SystemTimeAuthority
from visitrack.infrastructure.observability import configure_structlog
from visitrack.infrastructure.stubs.audit_repository_stub import AuditRepositoryStub
from visitrack.infrastructure.stubs.consent_repository_stub import ConsentRepositoryStub
from visitrack.infrastructure.stubs.user_directory_stub import UserDirectoryStub
from visitrack.infrastructure.stubs.visit_repository_stub import VisitRepositoryStub
from visitrack.infrastructure.stubs.visitor_repository_stub import VisitorRepositoryStub

logger = get_logger()

ENVIRONMENT_VAR = "ENVIRONMENT"
DEFAULT_ENVIRONMENT = "development"


@dataclass
class VisitrackContainer:
    """Every wired component of a running visitrack process."""

    config: VisitrackConfig
    time_authority: TimeAuthorityProtocol
    visit_repository: VisitRepositoryProtocol
    visitor_repository: VisitorRepositoryProtocol
    consent_repository: ConsentRepositoryProtocol
    audit_repository: AuditRepositoryProtocol
    user_directory: UserDirectoryProtocol
    audit_trail: AuditTrailService
    consent_ledger: ConsentLedgerService
    connections: ConnectionRegistry
    router: NotificationRouter
    outbox: NotificationOutbox
    occupancy: OccupancyTracker
    registry: VisitRegistryService
    emergency: EmergencyService
    gateway: RealtimeGateway
    scheduler: SweepScheduler

    async def start(self, run_sweeps: bool = True) -> None:
        """Rebuild occupancy from storage and start background loops."""
        self.occupancy.rebuild(await self.visit_repository.list_all())
        await self.outbox.start()
        if run_sweeps:
            await self.scheduler.start()
        logger.info(
            "visitrack_started",
            occupancy=self.occupancy.current(),
            sweeps=self.scheduler.sweep_names if run_sweeps else [],
        )

    async def stop(self) -> None:
        """Stop sweeps, then drain the outbox."""
        await self.scheduler.stop()
        await self.outbox.stop(drain=True)
        logger.info("visitrack_stopped")


def _default_senders(config: VisitrackConfig) -> list[ChannelSenderProtocol]:
    if not config.notification_gateway_url:
        return []
    return [
        HttpChannelSender(channel, config.notification_gateway_url)
        for channel in OFFLINE_CHANNELS
    ]


def build_container(
    config: VisitrackConfig | None = None,
    time_authority: TimeAuthorityProtocol | None = None,
    visit_repository: VisitRepositoryProtocol | None = None,
    visitor_repository: VisitorRepositoryProtocol | None = None,
    consent_repository: ConsentRepositoryProtocol | None = None,
    audit_repository: AuditRepositoryProtocol | None = None,
    user_directory: UserDirectoryProtocol | None = None,
    senders: Sequence[ChannelSenderProtocol] | None = None,
) -> VisitrackContainer:
    """Wire every service. Unspecified ports get stubs or defaults."""
    config = config or VisitrackConfig()
    clock = time_authority or SystemTimeAuthority()
    visits = visit_repository or VisitRepositoryStub()
    visitors = visitor_repository or VisitorRepositoryStub()
    consents = consent_repository or ConsentRepositoryStub()
    audits = audit_repository or AuditRepositoryStub()
    directory = user_directory or UserDirectoryStub()

    audit_trail = AuditTrailService(audits, clock, config)
    consent_ledger = ConsentLedgerService(consents, visitors, audit_trail, clock)
    connections = ConnectionRegistry(
        shards=config.connection_shards, queue_size=config.connection_queue_size
    )
    router = NotificationRouter(
        connections=connections,
        rate_limiter=EventRateLimiter(
            clock,
            limit=config.realtime_rate_limit,
            window_seconds=config.realtime_rate_window_seconds,
        ),
        user_directory=directory,
        audit_trail=audit_trail,
        visit_repository=visits,
        time_authority=clock,
        senders=_default_senders(config) if senders is None else senders,
        retry_attempts=config.notification_retry_attempts,
        retry_base_delay=config.notification_retry_base_delay,
        channel_timeout=config.channel_timeout_seconds,
        max_escalations=config.notification_max_escalations,
    )
    outbox = NotificationOutbox(
        partial(router.dispatch, detach_escalation=True),
        max_size=config.outbox_max_size,
        settle=router.wait_for_escalations,
    )
    occupancy = OccupancyTracker(
        clock,
        publisher=outbox,
        max_occupancy=config.max_occupancy,
        alert_threshold=config.occupancy_alert_threshold,
    )
    registry = VisitRegistryService(
        visit_repository=visits,
        visitor_repository=visitors,
        user_directory=directory,
        consent_ledger=consent_ledger,
        audit_trail=audit_trail,
        occupancy=occupancy,
        publisher=outbox,
        time_authority=clock,
        config=config,
    )
    emergency = EmergencyService(router, registry, audit_trail, clock)
    return VisitrackContainer(
        config=config,
        time_authority=clock,
        visit_repository=visits,
        visitor_repository=visitors,
        consent_repository=consents,
        audit_repository=audits,
        user_directory=directory,
        audit_trail=audit_trail,
        consent_ledger=consent_ledger,
        connections=connections,
        router=router,
        outbox=outbox,
        occupancy=occupancy,
        registry=registry,
        emergency=emergency,
        gateway=RealtimeGateway(router, registry, occupancy, emergency),
        scheduler=SweepScheduler(registry, consent_ledger, audit_trail, clock, config),
    )


_container: VisitrackContainer | None = None


def get_container() -> VisitrackContainer:
    """Get the process-wide container, building it from the environment once."""
    global _container
    if _container is None:
        configure_structlog(os.environ.get(ENVIRONMENT_VAR, DEFAULT_ENVIRONMENT))
        _container = build_container(load_config())
    return _container


def set_container(container: VisitrackContainer) -> None:
    """Set a custom container for testing."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset the singleton for testing."""
    global _container
    _container = None
