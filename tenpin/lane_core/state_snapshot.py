"""
State Snapshot
==============

Presentation-facing game state, plus fixed-size numpy packing for
Gymnasium observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING
import numpy as np

from tenpin.lane_core.config_loader import GameConfig, get_config
from tenpin.lane_core.scorecard import FRAMES_PER_GAME, PIN_COUNT

if TYPE_CHECKING:
    from tenpin.lane_core.scorekeeper import MultiPlayerScorekeeper
    from tenpin.lane_core.throw_resolution import ThrowResolutionStateMachine


@dataclass
class GameState:
    """
    Everything a scoreboard or agent needs between throws.

    Arrays are indexed by pin number - 1 and masked with ``pin_standing``.
    """
    player_name: str
    player_index: int
    game_number: int
    frame_number: int
    ball_number: int
    pins_remaining: int
    current_score: int
    is_game_complete: bool
    can_throw: bool
    combined_score: int
    combined_average: int
    throw_state: str

    # Per-frame scores of the current player (-1 where unresolved)
    frame_scores: np.ndarray      # (10,) int32

    # Deck
    pin_standing: np.ndarray      # (10,) bool
    pin_x: np.ndarray             # (10,) float32
    pin_y: np.ndarray             # (10,) float32

    def to_dict(self) -> Dict[str, Any]:
        """Scalar fields for status displays."""
        return {
            "player_name": self.player_name,
            "game_number": self.game_number,
            "frame_number": self.frame_number,
            "ball_number": self.ball_number,
            "pins_remaining": self.pins_remaining,
            "current_score": self.current_score,
            "is_game_complete": self.is_game_complete,
            "can_throw": self.can_throw,
            "combined_score": self.combined_score,
            "combined_average": self.combined_average,
        }

    def to_obs_dict(self, include_pin_positions: bool = True) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        obs = {
            "player_index": np.array(self.player_index, dtype=np.int32),
            "game_number": np.array(self.game_number, dtype=np.int32),
            "frame_number": np.array(self.frame_number, dtype=np.int32),
            "ball_number": np.array(self.ball_number, dtype=np.int32),
            "pins_remaining": np.array(self.pins_remaining, dtype=np.int32),
            "current_score": np.array(self.current_score, dtype=np.int32),
            "frame_scores": self.frame_scores,
            "pin_standing": self.pin_standing.astype(np.int8),
        }
        if include_pin_positions:
            obs["pin_x"] = self.pin_x
            obs["pin_y"] = self.pin_y
        return obs


class SnapshotBuilder:
    """Builds GameState from the live components."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config

    def build(
        self,
        scorekeeper: "MultiPlayerScorekeeper",
        machine: "ThrowResolutionStateMachine",
        lane
    ) -> GameState:
        """
        Snapshot the current turn.

        Args:
            scorekeeper: Roster and scores.
            machine: Throw state machine (ball number, throw state).
            lane: Physics collaborator for the deck layout.
        """
        player = scorekeeper.current_player
        stream = player.stream
        game = stream.current_game

        frame_scores = np.full(FRAMES_PER_GAME, -1, dtype=np.int32)
        for i, frame in enumerate(game.frames):
            if frame.cumulative_score is not None:
                frame_scores[i] = frame.cumulative_score

        pin_standing = np.zeros(PIN_COUNT, dtype=bool)
        pin_x = np.zeros(PIN_COUNT, dtype=np.float32)
        pin_y = np.zeros(PIN_COUNT, dtype=np.float32)
        for handle, pin in enumerate(lane.pins):
            slot = pin.number - 1
            pin_x[slot], pin_y[slot] = pin.position
            pin_standing[slot] = not lane.is_pin_down(handle)

        return GameState(
            player_name=player.name,
            player_index=scorekeeper.current_index,
            game_number=stream.game_number,
            frame_number=stream.current_frame.frame_number,
            ball_number=machine.ball_number,
            pins_remaining=machine.pins_remaining,
            current_score=stream.game_score(),
            is_game_complete=game.is_complete,
            can_throw=machine.can_throw,
            combined_score=scorekeeper.combined_score(),
            combined_average=scorekeeper.combined_average(),
            throw_state=machine.state.value,
            frame_scores=frame_scores,
            pin_standing=pin_standing,
            pin_x=pin_x,
            pin_y=pin_y,
        )
