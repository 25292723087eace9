"""Database collaborator: Players schema and the Spanner adapter."""

from spanner_telemetry.database.client import SpannerDatabase
from spanner_telemetry.database.players import (
    PLAYER_COLUMNS,
    PLAYERS_DDL,
    PLAYERS_TABLE,
    Player,
    build_player_batch,
)

__all__ = [
    "PLAYER_COLUMNS",
    "PLAYERS_DDL",
    "PLAYERS_TABLE",
    "Player",
    "SpannerDatabase",
    "build_player_batch",
]
