"""Scripted database operations with timing and stats recording.

The sequence is linear: create the database, warm the session with one
read, then insert a few batches of players. Each batch's write latency is
recorded together with the warm-up read latency and a transaction count.
Any failure ends the sequence early; the database client is always closed.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from opentelemetry.trace import SpanKind

from spanner_telemetry.config.models.workload import WorkloadConfig
from spanner_telemetry.database.players import Player, build_player_batch
from spanner_telemetry.observability.logging import get_logger
from spanner_telemetry.observability.tracing import create_span, get_current_trace_id
from spanner_telemetry.telemetry import TelemetryContext

logger = get_logger(__name__)

ROOT_SPAN_NAME = "create-players"


class Database(Protocol):
    """The calls the driver makes against the database."""

    def create_database(self, timeout: float | None = None) -> None: ...

    def read_player(self, email: str) -> list[Any]: ...

    def insert_players(self, players: list[Player]) -> None: ...

    def close(self) -> None: ...


@dataclass
class OperationReport:
    """Outcome of one run of the scripted operations."""

    transactions_recorded: int = 0
    completed: bool = False
    error: Exception | None = None


def elapsed_ms(start: float, end: float) -> float:
    """Milliseconds between two monotonic timestamps, never negative."""
    return max(0.0, (end - start) * 1000.0)


def run_operations(
    context: TelemetryContext,
    database: Database,
    workload: WorkloadConfig | None = None,
    clock: Callable[[], float] = time.monotonic,
    wall_clock: Callable[[], float] = time.time,
) -> OperationReport:
    """Run the scripted operations against the database.

    Args:
        context: Telemetry context providing the tracer and recorder
        database: Database collaborator; closed before returning
        workload: Iteration count and warm-up settings
        clock: Monotonic clock used for latencies
        wall_clock: Wall clock used for e-mail uniqueness tokens

    Returns:
        Report of recorded transactions and the error that stopped the run
    """
    workload = workload or WorkloadConfig()
    report = OperationReport()
    trace_id: str | None = None

    try:
        if workload.create_database:
            database.create_database(timeout=workload.create_timeout_seconds)

        with create_span(context.tracer, ROOT_SPAN_NAME) as root_span:
            trace_id = get_current_trace_id()
            # Warm up the client session before the timed writes
            start_read = clock()
            database.read_player(workload.warmup_email)
            read_latency_ms = elapsed_ms(start_read, clock())

            for index in range(workload.iterations):
                players = build_player_batch(index, wall_clock())

                with create_span(
                    context.tracer,
                    "write-players",
                    kind=SpanKind.CLIENT,
                    attributes={"iteration": index, "players": len(players)},
                ):
                    start_write = clock()
                    database.insert_players(players)
                    write_latency_ms = elapsed_ms(start_write, clock())

                context.record_transaction(read_latency_ms, write_latency_ms)
                report.transactions_recorded += 1
                logger.debug(
                    "transaction_recorded",
                    iteration=index,
                    read_latency_ms=round(read_latency_ms, 3),
                    write_latency_ms=round(write_latency_ms, 3),
                )

            root_span.set_attribute("transactions", report.transactions_recorded)

        report.completed = True
    except Exception as e:
        report.error = e
        cause = e.__cause__
        logger.error(
            "operations_failed",
            error=str(e),
            error_type=type(e).__name__,
            cause_type=type(cause).__name__ if cause is not None else None,
            trace_id=trace_id,
            transactions_recorded=report.transactions_recorded,
        )
    finally:
        database.close()

    logger.info(
        "operations_finished",
        completed=report.completed,
        transactions_recorded=report.transactions_recorded,
    )
    return report
