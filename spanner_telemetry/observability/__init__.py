"""Observability: structured logging and distributed tracing.

Provides standardized observability primitives using structlog for logging
and OpenTelemetry for tracing. Stats live in spanner_telemetry.stats.
"""
