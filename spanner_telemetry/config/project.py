"""Project id discovery through Google default credentials."""

import google.auth
from google.auth.exceptions import DefaultCredentialsError

from spanner_telemetry.exceptions import MissingConfigError
from spanner_telemetry.observability.logging import get_logger

logger = get_logger(__name__)


def resolve_project_id(explicit: str | None = None) -> str:
    """Resolve the project the database and telemetry belong to.

    Args:
        explicit: Project id from configuration; wins when set

    Returns:
        Project id

    Raises:
        MissingConfigError: If no project can be determined
    """
    if explicit:
        return explicit

    try:
        _, project_id = google.auth.default()
    except DefaultCredentialsError as e:
        raise MissingConfigError(
            "Could not determine the project id: no default credentials found. "
            "Set GOOGLE_CLOUD_PROJECT or configure application default credentials.",
            setting="GOOGLE_CLOUD_PROJECT",
        ) from e

    if not project_id:
        raise MissingConfigError(
            "Default credentials carry no project id. Set GOOGLE_CLOUD_PROJECT.",
            setting="GOOGLE_CLOUD_PROJECT",
        )

    logger.debug("project_id_discovered", project_id=project_id)
    return project_id
