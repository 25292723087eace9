"""Exception hierarchy for spanner-telemetry.

Configuration and exporter errors are fatal at startup and propagate out of
``main()``. Database errors are raised by the database adapter and handled
at the operation driver's single recovery boundary.
"""


class SpannerTelemetryError(Exception):
    """Base exception for all spanner-telemetry errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(SpannerTelemetryError):
    """Raised when configuration is invalid or incomplete."""


class MissingConfigError(ConfigurationError):
    """Raised when a required setting (env var or project id) is absent."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class ExporterInitError(SpannerTelemetryError):
    """Raised when a trace or stats sink cannot be configured."""


class DatabaseOperationError(SpannerTelemetryError):
    """Raised when a create, read or write against the database fails.

    The underlying client exception is available as ``cause`` and is also
    chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class OperationInterruptedError(SpannerTelemetryError):
    """Raised when a blocking database wait is interrupted."""


class DuplicateMeasureError(SpannerTelemetryError):
    """Raised when a measure name is defined twice in one registry."""


class DuplicateViewError(SpannerTelemetryError):
    """Raised when a different view is registered under an existing name."""
