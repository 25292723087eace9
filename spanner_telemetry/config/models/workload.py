"""Workload configuration models."""

from pydantic import BaseModel, Field


class WorkloadConfig(BaseModel):
    """Shape of the scripted database operations."""

    iterations: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Number of batched insert transactions",
    )
    warmup_email: str = Field(
        default="foo@gmail.com",
        description="Key read once to warm up the client session",
    )
    create_database: bool = Field(
        default=True,
        description="Create the database and Players table before writing",
    )
    create_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Upper bound on waiting for database creation; None waits indefinitely",
    )
