"""
Series Stream
=============

One player's sequence of games. Wraps a single GameScoringEngine at a time
and starts the next game only when the current one is finished.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from tenpin.lane_core.config_loader import GameConfig, get_config
from tenpin.lane_core.scorecard import FrameScore, GameRecord, SeriesRecord
from tenpin.lane_core.scoring import GameScoringEngine

logger = logging.getLogger(__name__)


class PlayerScoringStream:
    """Scores a fixed-length series of games for one player."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        games_per_series: Optional[int] = None
    ):
        """
        Initialize the stream with its first game.

        Args:
            config: Game configuration. Uses default if None.
            games_per_series: Override the configured series length.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._capacity = games_per_series or config.series.games_per_series
        self._series = SeriesRecord(capacity=self._capacity)
        self._engine = self._open_game()

    def _open_game(self) -> GameScoringEngine:
        engine = GameScoringEngine()
        self._series.games.append(engine.game)
        self._series.current_game_index = len(self._series.games) - 1
        return engine

    @property
    def series(self) -> SeriesRecord:
        return self._series

    @property
    def engine(self) -> GameScoringEngine:
        """Engine scoring the active game."""
        return self._engine

    @property
    def current_game(self) -> GameRecord:
        return self._series.current_game

    @property
    def current_frame(self) -> FrameScore:
        return self._engine.current_frame

    @property
    def game_number(self) -> int:
        """1-based index of the active game."""
        return self._series.current_game_index + 1

    @property
    def games_per_series(self) -> int:
        return self._capacity

    def record_throw(self, pins: int) -> bool:
        """Record a throw in the active game. See GameScoringEngine.record_throw."""
        return self._engine.record_throw(pins)

    def game_score(self) -> int:
        """Running total of the active game."""
        return self._engine.total_score

    def start_next_game(self) -> bool:
        """
        Begin the next game of the series.

        Returns:
            True if a new game was started, False if the current game is
            unfinished or the series is exhausted.
        """
        if not self._engine.is_complete:
            return False
        if not self._series.has_capacity:
            logger.debug("Series exhausted after %d games", len(self._series.games))
            return False

        self._engine = self._open_game()
        logger.debug("Started game %d of %d", self.game_number, self._capacity)
        return True

    def can_start_next_game(self) -> bool:
        return self._engine.is_complete and self._series.has_capacity

    def series_average(self) -> int:
        """Mean total over completed games, rounded half up; 0 with none complete."""
        completed = self._series.completed_games
        if not completed:
            return 0
        total = sum(game.total_score for game in completed)
        return _round_half_up(total / len(completed))

    def is_series_complete(self) -> bool:
        """True once every game slot has been played to completion."""
        return (
            len(self._series.games) >= self._capacity
            and all(game.is_complete for game in self._series.games)
        )

    def games_data(self) -> List[Dict[str, Any]]:
        """Per-game summary rows."""
        return [
            {
                "game_number": index + 1,
                "frames": game.frames,
                "total_score": game.total_score,
                "is_complete": game.is_complete,
            }
            for index, game in enumerate(self._series.games)
        ]

    def reset(self) -> None:
        """Discard the whole series and start again at game 1."""
        self._series = SeriesRecord(capacity=self._capacity)
        self._engine = self._open_game()


def _round_half_up(value: float) -> int:
    """Round like a scorecard does (x.5 goes up), not banker's rounding."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)
