"""Cloud Spanner adapter.

Wraps the google-cloud-spanner client behind the three calls the driver
makes. Client failures surface as DatabaseOperationError chained to the
original API exception.
"""

from collections.abc import Sequence
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.cloud import spanner
from google.cloud.spanner_v1.pool import AbstractSessionPool, BurstyPool

from spanner_telemetry.database.players import (
    PLAYER_COLUMNS,
    PLAYERS_DDL,
    PLAYERS_TABLE,
    Player,
)
from spanner_telemetry.exceptions import DatabaseOperationError, OperationInterruptedError
from spanner_telemetry.observability.logging import get_logger

logger = get_logger(__name__)


class SpannerDatabase:
    """One Spanner database plus the client that owns its sessions.

    Usable as a context manager; the session pool and the client are
    released exactly once.
    """

    def __init__(
        self,
        client: Any,
        instance_id: str,
        database_id: str,
        pool: AbstractSessionPool | None = None,
    ) -> None:
        self._client = client
        self.instance_id = instance_id
        self.database_id = database_id
        self._pool = pool if pool is not None else BurstyPool()
        self._instance = client.instance(instance_id)
        self._database = self._instance.database(
            database_id, ddl_statements=[PLAYERS_DDL], pool=self._pool
        )
        self._closed = False

    @classmethod
    def connect(cls, project_id: str, instance_id: str, database_id: str) -> "SpannerDatabase":
        """Instantiate a Spanner client for the project."""
        client = spanner.Client(project=project_id)
        logger.info(
            "spanner_client_created",
            project_id=project_id,
            instance_id=instance_id,
            database_id=database_id,
        )
        return cls(client, instance_id, database_id)

    @property
    def closed(self) -> bool:
        return self._closed

    def create_database(self, timeout: float | None = None) -> None:
        """Create the database with the Players table and wait for completion.

        Raises:
            DatabaseOperationError: If creation fails (e.g. it already exists)
            OperationInterruptedError: If the wait is interrupted
        """
        try:
            operation = self._database.create()
            operation.result(timeout=timeout)
        except KeyboardInterrupt as e:
            raise OperationInterruptedError(
                f"Interrupted while creating database {self.database_id}"
            ) from e
        except (GoogleAPIError, TimeoutError) as e:
            raise DatabaseOperationError(
                f"Could not create database {self.database_id}: {e}",
                operation="create_database",
                cause=e,
            ) from e

        logger.info("database_created", instance_id=self.instance_id, database_id=self.database_id)

    def read_player(self, email: str) -> list[Any]:
        """Read one row of the Players table by primary key."""
        try:
            with self._database.snapshot() as snapshot:
                rows = snapshot.read(
                    table=PLAYERS_TABLE,
                    columns=("email",),
                    keyset=spanner.KeySet(keys=[[email]]),
                )
                return list(rows)
        except GoogleAPIError as e:
            raise DatabaseOperationError(
                f"Could not read player: {e}",
                operation="read",
                cause=e,
            ) from e

    def insert_players(self, players: Sequence[Player]) -> None:
        """Insert players in a single batch commit."""
        try:
            with self._database.batch() as batch:
                batch.insert(
                    table=PLAYERS_TABLE,
                    columns=PLAYER_COLUMNS,
                    values=[player.as_row() for player in players],
                )
        except GoogleAPIError as e:
            raise DatabaseOperationError(
                f"Could not insert {len(players)} players: {e}",
                operation="write",
                cause=e,
            ) from e

    def close(self) -> None:
        """Delete pooled sessions and close the client; later calls are no-ops.

        A failure deleting sessions is logged and the client is still closed.
        The server reclaims any session left behind once it idles out.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._pool.clear()
        except GoogleAPIError as e:
            logger.warning("session_pool_clear_failed", error=str(e))
        finally:
            self._client.close()
        logger.info("spanner_client_closed")

    def __enter__(self) -> "SpannerDatabase":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
