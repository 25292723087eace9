"""Program entry point.

Loads configuration, wires telemetry, runs the scripted database operations
and keeps the process alive long enough for the background exporters to
ship the final measurements.
"""

import threading

from spanner_telemetry.config import get_settings, resolve_project_id
from spanner_telemetry.database.client import SpannerDatabase
from spanner_telemetry.driver import OperationReport, run_operations
from spanner_telemetry.observability.logging import get_logger, setup_logging
from spanner_telemetry.telemetry import configure_telemetry

logger = get_logger(__name__)


def wait_for_export(seconds: float, cancel: threading.Event | None = None) -> bool:
    """Block so the periodic exporters run at least once more.

    Args:
        seconds: How long to wait
        cancel: Set to end the wait early

    Returns:
        True if the full period elapsed, False if it was cut short
    """
    event = cancel or threading.Event()
    logger.info("waiting_for_export", seconds=seconds)
    try:
        cancelled = event.wait(seconds)
    except KeyboardInterrupt:
        # The process exits right after; the final flush still runs
        logger.warning("export_wait_interrupted")
        return False
    if cancelled:
        logger.info("export_wait_cancelled")
    return not cancelled


def run() -> OperationReport:
    """Run the instrumented workload once.

    Raises:
        MissingConfigError: If INSTANCE_ID, DATABASE_ID or the project is missing
        ExporterInitError: If a trace or stats sink cannot be configured
    """
    settings = get_settings()
    observability = settings.observability
    setup_logging(
        level=observability.logging.level,
        format=observability.logging.format,
        redact_pii=observability.logging.redact_pii,
    )

    project_id = resolve_project_id(settings.project_id)
    context = configure_telemetry(settings, project_id)

    try:
        database = SpannerDatabase.connect(project_id, settings.instance_id, settings.database_id)
        report = run_operations(context, database, settings.workload)
        linger = observability.linger_seconds
        wait_for_export(linger if linger is not None else observability.export_interval_seconds)
    finally:
        context.shutdown()

    return report


def main() -> None:
    run()


if __name__ == "__main__":
    main()
