"""Players table schema and sample rows."""

from dataclasses import astuple, dataclass

PLAYERS_TABLE = "Players"
PLAYER_COLUMNS: tuple[str, ...] = ("first_name", "last_name", "email", "uuid")

PLAYERS_DDL = (
    "CREATE TABLE Players (\n"
    "  first_name STRING(1024),\n"
    "  last_name  STRING(1024),\n"
    "  email   STRING(1024),\n"
    "  uuid STRING(1024)\n"
    ") PRIMARY KEY (email)"
)


@dataclass(frozen=True)
class Player:
    first_name: str
    last_name: str
    email: str
    uuid: str

    def as_row(self) -> tuple[str, ...]:
        """Values in PLAYER_COLUMNS order."""
        return astuple(self)


# (first_name, last_name, email suffix, uuid)
SAMPLE_PLAYERS: tuple[tuple[str, str, str, str], ...] = (
    ("Poke", "Mon", "poke.mon@example.org", "f1578551-eb4b-4ecd-aee2-9f97c37e164e"),
    ("Go", "Census", "go.census@census.io", "540868a2-a1d8-456b-a995-b324e4e7957a"),
    ("Quick", "Sort", "q.sort@gmail.com", "2b7e0098-a5cc-4f32-aabd-b978fc6b9710"),
)


def uniqueness_token(index: int, epoch_seconds: float) -> str:
    """Prefix that keeps e-mail primary keys unique across iterations and runs."""
    return f"{index}-{int(epoch_seconds)}."


def build_player_batch(index: int, epoch_seconds: float) -> list[Player]:
    """Build the rows inserted by one write transaction.

    Args:
        index: Iteration number
        epoch_seconds: Current wall-clock time

    Returns:
        Players whose e-mails carry the iteration's uniqueness token
    """
    token = uniqueness_token(index, epoch_seconds)
    return [
        Player(first_name=first, last_name=last, email=f"{token}{suffix}", uuid=player_uuid)
        for first, last, suffix, player_uuid in SAMPLE_PLAYERS
    ]
