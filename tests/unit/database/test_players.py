"""Tests for the Players schema and batch builder."""

from spanner_telemetry.database.players import (
    PLAYER_COLUMNS,
    PLAYERS_DDL,
    Player,
    build_player_batch,
    uniqueness_token,
)


class TestPlayersSchema:
    """Tests for the table definition."""

    def test_ddl_keys_on_email(self) -> None:
        assert PLAYERS_DDL.startswith("CREATE TABLE Players (")
        assert PLAYERS_DDL.endswith("PRIMARY KEY (email)")
        for column in PLAYER_COLUMNS:
            assert f"{column} " in PLAYERS_DDL

    def test_row_follows_column_order(self) -> None:
        player = Player("Go", "Census", "go.census@census.io", "uuid-1")
        assert player.as_row() == ("Go", "Census", "go.census@census.io", "uuid-1")


class TestBuildPlayerBatch:
    """Tests for build_player_batch."""

    def test_token_format(self) -> None:
        assert uniqueness_token(2, 1700000000.75) == "2-1700000000."

    def test_three_players_with_token_prefix(self) -> None:
        batch = build_player_batch(1, 1700000000.0)

        assert len(batch) == 3
        assert [player.email for player in batch] == [
            "1-1700000000.poke.mon@example.org",
            "1-1700000000.go.census@census.io",
            "1-1700000000.q.sort@gmail.com",
        ]
        assert batch[0].uuid == "f1578551-eb4b-4ecd-aee2-9f97c37e164e"

    def test_emails_unique_across_iterations(self) -> None:
        """Keys never collide between iterations of the same run."""
        emails = [
            player.email
            for index in range(3)
            for player in build_player_batch(index, 1700000000.0)
        ]
        assert len(set(emails)) == len(emails)
