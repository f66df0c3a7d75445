"""Unit tests for structured logging configuration."""

from __future__ import annotations

import json
from collections.abc import Iterator
from uuid import uuid4

import pytest
import structlog

from visitrack.application.services.base import LoggingMixin
from visitrack.infrastructure.observability import (
    configure_structlog,
    get_logger_for_service,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    set_correlation_id("")
    structlog.reset_defaults()


class TestConfigureStructlog:
    """Tests for configure_structlog."""

    def test_production_renders_json(self) -> None:
        configure_structlog(environment="production")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_renders_console(self) -> None:
        configure_structlog(environment="development")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


class TestLogOutput:
    """Tests for the JSON log line."""

    def test_json_line_carries_correlation_id(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")
        set_correlation_id("corr-123")

        structlog.get_logger().info("visitor_checked_in", visit_id="v-1")

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["event"] == "visitor_checked_in"
        assert entry["level"] == "info"
        assert entry["correlation_id"] == "corr-123"
        assert entry["visit_id"] == "v-1"
        assert "T" in entry["timestamp"]

    def test_no_correlation_id_when_unset(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")
        set_correlation_id("")

        structlog.get_logger().info("sweep_completed")

        entry = json.loads(capsys.readouterr().out.strip())
        assert "correlation_id" not in entry

    def test_log_level_filters(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        configure_structlog(environment="production")

        log = structlog.get_logger()
        log.info("quiet")
        log.warning("loud")

        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["loud"]

    def test_explicit_level_wins_over_env(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        configure_structlog(environment="production", level="debug")

        structlog.get_logger().debug("verbose")

        assert json.loads(capsys.readouterr().out.strip())["event"] == "verbose"

    def test_personal_data_is_masked(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")

        structlog.get_logger().info(
            "visitor_registered", email="ada@example.com", phone=None, company="Analytical"
        )

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["email"] == "***"
        assert entry["phone"] is None
        assert entry["company"] == "Analytical"


class TestServiceLoggers:
    def test_service_logger_binds_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")

        get_logger_for_service("OccupancyTracker", component="occupancy").info("occupancy_rebuilt")

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["service"] == "OccupancyTracker"
        assert entry["component"] == "occupancy"

    def test_logging_mixin_binds_operation(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog(environment="production")
        set_correlation_id("corr-mixin")

        class Sample(LoggingMixin):
            def __init__(self) -> None:
                self._init_logger(component="compliance")

        Sample()._log_operation("anonymize", entry_id="e-1").info("audit_entry_anonymized")

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["service"] == "Sample"
        assert entry["operation"] == "anonymize"
        assert entry["entry_id"] == "e-1"
        assert entry["correlation_id"] == "corr-mixin"

    def test_logging_mixin_renders_uuids_and_skips_none(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_structlog(environment="production")
        visit_id = uuid4()

        class Sample(LoggingMixin):
            def __init__(self) -> None:
                self._init_logger()

        log = Sample()._log_operation("cancel", visit_id=visit_id, operator_id=None)
        log.info("visit_cancelled")

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["visit_id"] == str(visit_id)
        assert "operator_id" not in entry
        assert entry["component"] == "visits"
