"""Tracing and stats instrumentation for Cloud Spanner operations."""

__version__ = "0.1.0"
