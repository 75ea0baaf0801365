"""
Tests for a single player's series stream.
"""

import pytest

from tenpin.lane_core.series import PlayerScoringStream


@pytest.fixture
def stream(config):
    return PlayerScoringStream(config)


def play_game(stream, throws):
    for pins in throws:
        assert stream.record_throw(pins)


class TestSeriesFlow:
    """Test starting games within a series."""

    def test_starts_at_game_one(self, stream, config):
        """A fresh stream holds one empty game."""
        assert stream.game_number == 1
        assert stream.games_per_series == config.series.games_per_series
        assert stream.current_frame.frame_number == 1

    def test_cannot_start_next_game_early(self, stream):
        """Next game is refused while the current game is open."""
        stream.record_throw(10)

        assert not stream.can_start_next_game()
        assert not stream.start_next_game()
        assert stream.game_number == 1

    def test_start_next_game(self, stream):
        """A finished game lets the next one begin."""
        play_game(stream, [10] * 12)

        assert stream.start_next_game()
        assert stream.game_number == 2
        assert stream.game_score() == 0
        assert stream.series.games[0].total_score == 300

    def test_series_exhausted(self, config):
        """No game beyond the series length can be started."""
        stream = PlayerScoringStream(config, games_per_series=2)
        play_game(stream, [0] * 20)
        assert stream.start_next_game()
        play_game(stream, [0] * 20)

        assert stream.is_series_complete()
        assert not stream.can_start_next_game()
        assert not stream.start_next_game()
        assert stream.game_number == 2

    def test_record_after_game_complete(self, stream):
        """Throws are refused between the end of a game and the next start."""
        play_game(stream, [0] * 20)

        assert not stream.record_throw(5)


class TestSeriesAverage:
    """Test series average over completed games."""

    def test_no_completed_games(self, stream):
        """Average is 0 before any game is finished."""
        stream.record_throw(10)
        assert stream.series_average() == 0

    def test_average_ignores_open_game(self, stream):
        """Only completed games count."""
        play_game(stream, [10] * 12)
        stream.start_next_game()
        play_game(stream, [10, 10, 10])

        assert stream.series_average() == 300

    def test_average_rounds_half_up(self, config):
        """150 and 151 average to 151, not banker's 150."""
        stream = PlayerScoringStream(config, games_per_series=2)
        play_game(stream, [5] * 21)                     # 150
        stream.start_next_game()
        play_game(stream, [5] * 20 + [6])               # 151

        assert stream.series.games[1].total_score == 151
        assert stream.series_average() == 151

    def test_games_data(self, stream):
        """games_data has a row per game started."""
        play_game(stream, [9, 0] * 10)
        stream.start_next_game()

        rows = stream.games_data()
        assert [r["game_number"] for r in rows] == [1, 2]
        assert rows[0]["total_score"] == 90
        assert rows[0]["is_complete"]
        assert not rows[1]["is_complete"]

    def test_reset(self, stream):
        """Reset returns to an empty game 1."""
        play_game(stream, [10] * 12)
        stream.start_next_game()
        stream.reset()

        assert stream.game_number == 1
        assert len(stream.series.games) == 1
        assert stream.game_score() == 0
