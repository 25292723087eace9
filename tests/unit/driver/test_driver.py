"""Tests for the operation driver."""

from collections.abc import Callable
from typing import Any

import pytest
from google.api_core.exceptions import AlreadyExists
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from structlog.testing import capture_logs

from spanner_telemetry.config.models.workload import WorkloadConfig
from spanner_telemetry.driver import ROOT_SPAN_NAME, elapsed_ms, run_operations
from spanner_telemetry.exceptions import DatabaseOperationError, OperationInterruptedError
from spanner_telemetry.telemetry import (
    READ_LATENCY_VIEW,
    TRANSACTION_SETS_VIEW,
    WRITE_LATENCY_VIEW,
    TelemetryContext,
)


def fixed_clock(*values: float) -> Callable[[], float]:
    """Clock returning the given readings in order."""
    readings = iter(values)
    return lambda: next(readings)


def transaction_count(context: TelemetryContext) -> int:
    view_data = context.view_manager.get_view_data(TRANSACTION_SETS_VIEW)
    assert view_data is not None
    data = view_data.data.get(("",))
    return data.count if data is not None else 0


def write_error(message: str = "duplicate key") -> DatabaseOperationError:
    return DatabaseOperationError(message, operation="write", cause=AlreadyExists(message))


class TestElapsedMs:
    """Tests for elapsed_ms."""

    def test_converts_to_milliseconds(self) -> None:
        assert elapsed_ms(1.0, 1.25) == 250.0

    def test_never_negative(self) -> None:
        assert elapsed_ms(2.0, 1.0) == 0.0


class TestRunOperations:
    """Tests for the happy path."""

    def test_records_one_transaction_per_iteration(
        self, telemetry: TelemetryContext, fake_database: Any
    ) -> None:
        report = run_operations(telemetry, fake_database)

        assert report.completed is True
        assert report.error is None
        assert report.transactions_recorded == 3
        assert transaction_count(telemetry) == 3
        assert fake_database.create_calls == 1
        assert fake_database.reads == ["foo@gmail.com"]
        assert len(fake_database.writes) == 3
        assert fake_database.close_calls == 1

    def test_batches_use_unique_emails(
        self, telemetry: TelemetryContext, fake_database: Any
    ) -> None:
        run_operations(telemetry, fake_database, wall_clock=lambda: 1700000000.0)

        emails = [player.email for batch in fake_database.writes for player in batch]
        assert len(emails) == 9
        assert len(set(emails)) == 9
        assert emails[3].startswith("1-1700000000.")

    def test_latencies_from_clock(self, telemetry: TelemetryContext, fake_database: Any) -> None:
        """The warm-up read latency is recorded with every write."""
        clock = fixed_clock(0.0, 0.004, 1.0, 1.020, 2.0, 2.030, 3.0, 3.040)

        run_operations(telemetry, fake_database, clock=clock)

        read_data = telemetry.view_manager.get_view_data(READ_LATENCY_VIEW)
        write_data = telemetry.view_manager.get_view_data(WRITE_LATENCY_VIEW)
        assert read_data is not None
        assert write_data is not None
        reads = read_data.data[("",)]
        writes = write_data.data[("",)]
        assert reads.count == 3
        assert reads.min == pytest.approx(4.0)
        assert reads.max == pytest.approx(4.0)
        assert writes.count == 3
        assert writes.min == pytest.approx(20.0)
        assert writes.max == pytest.approx(40.0)
        assert all(value >= 0 for value in (reads.min, writes.min))

    def test_workload_settings(self, telemetry: TelemetryContext, fake_database: Any) -> None:
        workload = WorkloadConfig(iterations=2, create_database=False, warmup_email="x@y.io")

        report = run_operations(telemetry, fake_database, workload)

        assert report.transactions_recorded == 2
        assert fake_database.create_calls == 0
        assert fake_database.reads == ["x@y.io"]

    def test_span_hierarchy(
        self,
        telemetry: TelemetryContext,
        fake_database: Any,
        span_exporter: InMemorySpanExporter,
    ) -> None:
        """Each batch write is a child of the root span."""
        run_operations(telemetry, fake_database)

        spans = span_exporter.get_finished_spans()
        [root] = [span for span in spans if span.name == ROOT_SPAN_NAME]
        writes = [span for span in spans if span.name == "write-players"]

        assert len(writes) == 3
        for span in writes:
            assert span.parent is not None
            assert span.parent.span_id == root.context.span_id
        assert [span.attributes["iteration"] for span in writes] == [0, 1, 2]
        assert root.attributes["transactions"] == 3


class TestFailures:
    """Any failure ends the sequence; the database is closed once."""

    def test_create_failure_records_nothing(
        self,
        telemetry: TelemetryContext,
        make_database: Callable[..., Any],
        span_exporter: InMemorySpanExporter,
    ) -> None:
        error = DatabaseOperationError(
            "exists", operation="create_database", cause=AlreadyExists("exists")
        )
        database = make_database(fail_on={"create": error})

        report = run_operations(telemetry, database)

        assert report.completed is False
        assert report.error is error
        assert report.transactions_recorded == 0
        assert transaction_count(telemetry) == 0
        assert database.reads == []
        assert database.close_calls == 1
        assert span_exporter.get_finished_spans() == ()

    def test_read_failure_stops_before_writes(
        self, telemetry: TelemetryContext, make_database: Callable[..., Any]
    ) -> None:
        database = make_database(
            fail_on={"read": DatabaseOperationError("read failed", operation="read")}
        )

        report = run_operations(telemetry, database)

        assert report.completed is False
        assert database.writes == []
        assert database.close_calls == 1

    def test_write_failure_midway(
        self,
        telemetry: TelemetryContext,
        make_database: Callable[..., Any],
        span_exporter: InMemorySpanExporter,
    ) -> None:
        """Earlier iterations stay recorded; the failed one records nothing."""
        database = make_database(fail_on={"write": write_error()}, fail_on_write_call=2)

        report = run_operations(telemetry, database)

        assert report.completed is False
        assert report.transactions_recorded == 1
        assert transaction_count(telemetry) == 1
        assert database.close_calls == 1

        [root] = [s for s in span_exporter.get_finished_spans() if s.name == ROOT_SPAN_NAME]
        assert root.status.status_code == StatusCode.ERROR
        assert [event.name for event in root.events] == ["exception"]
        assert root.events[0].attributes["exception.type"] == "DatabaseOperationError"

    def test_interrupted_create_is_reported(
        self, telemetry: TelemetryContext, make_database: Callable[..., Any]
    ) -> None:
        database = make_database(fail_on={"create": OperationInterruptedError("interrupted")})

        report = run_operations(telemetry, database)

        assert isinstance(report.error, OperationInterruptedError)
        assert database.close_calls == 1

    def test_failure_is_logged(
        self, telemetry: TelemetryContext, make_database: Callable[..., Any]
    ) -> None:
        database = make_database(fail_on={"write": write_error("boom")})

        with capture_logs() as logs:
            run_operations(telemetry, database)

        [failure] = [entry for entry in logs if entry["event"] == "operations_failed"]
        assert failure["error_type"] == "DatabaseOperationError"
        assert failure["cause_type"] == "AlreadyExists"
        assert failure["transactions_recorded"] == 0

    def test_failure_log_carries_root_trace_id(
        self,
        telemetry: TelemetryContext,
        make_database: Callable[..., Any],
        span_exporter: InMemorySpanExporter,
    ) -> None:
        """The failure log can be joined to the trace of the failed run."""
        database = make_database(fail_on={"write": write_error()}, fail_on_write_call=2)

        with capture_logs() as logs:
            run_operations(telemetry, database)

        [root] = [s for s in span_exporter.get_finished_spans() if s.name == ROOT_SPAN_NAME]
        [failure] = [entry for entry in logs if entry["event"] == "operations_failed"]
        assert failure["trace_id"] == format(root.context.trace_id, "032x")

    def test_create_failure_has_no_trace_id(
        self, telemetry: TelemetryContext, make_database: Callable[..., Any]
    ) -> None:
        database = make_database(fail_on={"create": OperationInterruptedError("interrupted")})

        with capture_logs() as logs:
            run_operations(telemetry, database)

        [failure] = [entry for entry in logs if entry["event"] == "operations_failed"]
        assert failure["trace_id"] is None
        assert failure["cause_type"] is None
