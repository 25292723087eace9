"""Shared test fixtures for the spanner-telemetry test suite."""

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from spanner_telemetry.database.players import Player
from spanner_telemetry.telemetry import TelemetryContext


class FakeDatabase:
    """In-memory stand-in for SpannerDatabase that records every call.

    ``fail_on`` maps an operation name ("create", "read", "write") to the
    exception it should raise; ``fail_on_write_call`` limits write failures
    to one call number (1-based).
    """

    def __init__(
        self,
        fail_on: dict[str, Exception] | None = None,
        fail_on_write_call: int | None = None,
    ) -> None:
        self.fail_on = fail_on or {}
        self.fail_on_write_call = fail_on_write_call
        self.create_calls = 0
        self.reads: list[str] = []
        self.writes: list[list[Player]] = []
        self.close_calls = 0

    def create_database(self, timeout: float | None = None) -> None:  # noqa: ARG002
        self.create_calls += 1
        if "create" in self.fail_on:
            raise self.fail_on["create"]

    def read_player(self, email: str) -> list[Any]:
        self.reads.append(email)
        if "read" in self.fail_on:
            raise self.fail_on["read"]
        return []

    def insert_players(self, players: list[Player]) -> None:
        call_number = len(self.writes) + 1
        if "write" in self.fail_on and (
            self.fail_on_write_call is None or self.fail_on_write_call == call_number
        ):
            raise self.fail_on["write"]
        self.writes.append(list(players))

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """Collects finished spans in memory."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> Generator[TracerProvider, None, None]:
    """A tracer provider that is never installed globally."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def telemetry(tracer_provider: TracerProvider) -> TelemetryContext:
    """Telemetry context with measures defined and views registered."""
    return TelemetryContext.create(
        tracer=tracer_provider.get_tracer("tests"),
        tracer_provider=None,
    )


@pytest.fixture
def fake_database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def make_database() -> Callable[..., FakeDatabase]:
    """Factory for fake databases that fail on chosen operations."""
    return FakeDatabase


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "[workload]\\niterations = 5",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _create_toml_files


@pytest.fixture
def required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set the two required environment variables."""
    monkeypatch.setenv("INSTANCE_ID", "test-instance")
    monkeypatch.setenv("DATABASE_ID", "test-database")


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache and TOML state around each test."""
    from spanner_telemetry.config import get_settings
    from spanner_telemetry.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any logging configuration a test installs."""
    yield
    structlog.reset_defaults()
