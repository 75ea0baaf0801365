"""
Multi-Player Scorekeeper
========================

Routes each throw to the bowler whose turn it is and rotates the turn when
that bowler's frame is finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from tenpin.lane_core.config_loader import GameConfig, get_config
from tenpin.lane_core.scorecard import PERFECT_GAME, FrameScore
from tenpin.lane_core.series import PlayerScoringStream

logger = logging.getLogger(__name__)


class GameMode(str, Enum):
    """Roster modes. The value is what configs and CLIs accept."""
    SINGLES = "singles"
    DOUBLES = "doubles"
    TEAM = "team"

    @property
    def roster_size(self) -> int:
        return _ROSTER_SIZES[self]

    def default_names(self) -> List[str]:
        if self is GameMode.SINGLES:
            return ["Player 1"]
        if self is GameMode.DOUBLES:
            return ["Athlete", "Partner"]
        return [
            f"Athlete {i + 1}" if i < 2 else f"Partner {i - 1}"
            for i in range(self.roster_size)
        ]


_ROSTER_SIZES = {
    GameMode.SINGLES: 1,
    GameMode.DOUBLES: 2,
    GameMode.TEAM: 4,
}


@dataclass
class Player:
    """A named bowler and the stream scoring their series."""
    name: str
    stream: PlayerScoringStream

    @property
    def series(self):
        return self.stream.series


class MultiPlayerScorekeeper:
    """
    Fixed roster of PlayerScoringStreams with a rotation cursor.

    A bowler throws every ball of their frame before the turn passes on.
    """

    def __init__(
        self,
        mode: GameMode = GameMode.SINGLES,
        config: Optional[GameConfig] = None,
        names: Optional[Sequence[str]] = None
    ):
        """
        Initialize the roster.

        Args:
            mode: Roster mode (or its string value).
            config: Game configuration. Uses default if None.
            names: Explicit player names; must match the roster size.

        Raises:
            ValueError: On an unknown mode or a name list of the wrong length.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._mode = GameMode(mode)
        self._names = list(names) if names is not None else self._mode.default_names()
        if len(self._names) != self._mode.roster_size:
            raise ValueError(
                f"Mode '{self._mode.value}' needs {self._mode.roster_size} names, "
                f"got {len(self._names)}"
            )

        self._players: List[Player] = []
        self._current_index: int = 0
        self._init_players()

    def _init_players(self) -> None:
        self._players = [
            Player(name=name, stream=PlayerScoringStream(self._config))
            for name in self._names
        ]
        self._current_index = 0

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def players(self) -> List[Player]:
        return self._players

    @property
    def current_index(self) -> int:
        """Rotation cursor."""
        return self._current_index

    @property
    def current_player(self) -> Player:
        return self._players[self._current_index]

    @property
    def current_frame(self) -> FrameScore:
        """Frame the current player will throw into next."""
        return self.current_player.stream.current_frame

    def record_throw(self, pins: int) -> bool:
        """
        Record a throw for the player whose turn it is.

        Returns:
            True if recorded; False if that player's game is already complete.

        Raises:
            MalformedPinCount: Propagated from the scoring engine.
        """
        player = self.current_player
        recorded = player.stream.record_throw(pins)
        if not recorded:
            return False

        frame = player.stream.engine.last_recorded_frame
        if frame is not None and frame.is_complete:
            self._advance_cursor()
        return True

    def _advance_cursor(self) -> None:
        """Pass the turn on, skipping bowlers who have already finished this game."""
        size = len(self._players)
        for step in range(1, size + 1):
            candidate = (self._current_index + step) % size
            if not self._players[candidate].stream.current_game.is_complete:
                self._current_index = candidate
                break
        else:
            # Everyone is done; plain wrap-around keeps the cursor moving
            self._current_index = (self._current_index + 1) % size

        logger.debug("Turn passes to %s", self.current_player.name)

    def is_round_complete(self) -> bool:
        """True when every player has finished their current game."""
        return all(p.stream.current_game.is_complete for p in self._players)

    def is_series_complete(self) -> bool:
        """True when the round is complete and no player has games left."""
        return self.is_round_complete() and not any(
            p.stream.can_start_next_game() for p in self._players
        )

    def start_next_game(self) -> bool:
        """
        Start the next game for every player and hand the turn to player 1.

        Returns:
            False if the round is unfinished or the series is exhausted.
        """
        if not self.is_round_complete():
            return False
        if not all(p.stream.can_start_next_game() for p in self._players):
            return False

        for player in self._players:
            player.stream.start_next_game()
        self._current_index = 0
        logger.debug("Round complete; starting game %d", self.current_player.stream.game_number)
        return True

    def combined_score(self) -> int:
        """Sum of every player's current-game total."""
        return sum(p.stream.game_score() for p in self._players)

    def combined_average(self) -> int:
        """Sum of every player's series average."""
        return int(round(sum(p.stream.series_average() for p in self._players)))

    def max_possible_score(self) -> int:
        """Best combined single-game score for this roster."""
        return PERFECT_GAME * len(self._players)

    def summary(self) -> List[Dict[str, Any]]:
        """Per-player series data for end-of-series display."""
        return [
            {
                "name": p.name,
                "games": p.stream.games_data(),
                "average": p.stream.series_average(),
            }
            for p in self._players
        ]

    def reset(self) -> None:
        """Fresh series for the same roster."""
        self._init_players()
