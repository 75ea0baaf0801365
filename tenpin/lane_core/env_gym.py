"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to a bowling series.
One step is one throw, simulated until the lane is ready for the next ball.
Reward is always 0.0 - bowlers compute their own from info.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple, Union
import numpy as np

import gymnasium as gym
from gymnasium import spaces

from tenpin.lane_core.config_loader import GameConfig, load_config
from tenpin.lane_core.game import BowlingGame, aim_to_direction
from tenpin.lane_core.scorecard import FRAMES_PER_GAME, PERFECT_GAME, PIN_COUNT
from tenpin.lane_core.scorekeeper import GameMode

logger = logging.getLogger(__name__)


class BowlingEnv(gym.Env):
    """
    Ten-pin bowling series as a Gymnasium environment.

    Action Space:
        Box(low=[-1, 0], high=[1, 1], shape=(2,), dtype=float32)
        [aim, power]: aim -1 is the left edge of the deck, +1 the right;
        power below the configured minimum is raised to it.

    Observation Space:
        Dict with the current turn (player, game, frame, ball), the running
        frame scores and the standing pins.

    Reward:
        Always 0.0. Bowlers must compute their own reward from the info dict.

    Info:
        Contains the throw result, current and combined scores, throw state.
    """

    metadata = {
        "render_modes": [],
        "render_fps": 60,
    }

    def __init__(
        self,
        config_path: Optional[str] = None,
        mode: Union[GameMode, str] = GameMode.SINGLES,
        max_seconds_per_throw: float = 120.0,
        debug: bool = False,
    ):
        """
        Initialize bowling environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            mode: Roster mode for every episode (can be overridden in reset options).
            max_seconds_per_throw: Simulated-time cap before a throw is truncated.
            debug: If True, log every step at INFO level.
        """
        super().__init__()

        self._config = load_config(config_path)
        self._mode = GameMode(mode)
        self._max_seconds = max_seconds_per_throw
        self._debug = debug

        self._game = BowlingGame(config=self._config, mode=self._mode)

        self.action_space = spaces.Box(
            low=np.array([-1.0, 0.0], dtype=np.float32),
            high=np.array([1.0, 1.0], dtype=np.float32),
            dtype=np.float32
        )
        self.observation_space = self._build_observation_space()

        if self._debug:
            logger.info("BowlingEnv initialized (mode=%s)", self._mode.value)

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        max_players = GameMode.TEAM.roster_size
        games = self._config.series.games_per_series

        obs_dict = {
            "player_index": spaces.Box(low=0, high=max_players - 1, shape=(), dtype=np.int32),
            "game_number": spaces.Box(low=1, high=games, shape=(), dtype=np.int32),
            "frame_number": spaces.Box(low=1, high=FRAMES_PER_GAME, shape=(), dtype=np.int32),
            "ball_number": spaces.Box(low=1, high=3, shape=(), dtype=np.int32),
            "pins_remaining": spaces.Box(low=0, high=PIN_COUNT, shape=(), dtype=np.int32),
            "current_score": spaces.Box(low=0, high=PERFECT_GAME, shape=(), dtype=np.int32),
            "frame_scores": spaces.Box(low=-1, high=PERFECT_GAME, shape=(FRAMES_PER_GAME,), dtype=np.int32),
            "pin_standing": spaces.MultiBinary(PIN_COUNT),
        }

        if self._config.observation.include_pin_positions:
            obs_dict["pin_x"] = spaces.Box(
                low=-np.inf, high=np.inf, shape=(PIN_COUNT,), dtype=np.float32
            )
            obs_dict["pin_y"] = spaces.Box(
                low=-np.inf, high=np.inf, shape=(PIN_COUNT,), dtype=np.float32
            )

        return spaces.Dict(obs_dict)

    def _observe(self) -> Dict[str, np.ndarray]:
        state = self._game.get_game_state()
        return state.to_obs_dict(self._config.observation.include_pin_positions)

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Start a fresh series.

        Args:
            seed: Random seed for lane domain randomization.
            options: {"mode": "singles" | "doubles" | "team", "names": [...]}.

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)

        options = options or {}
        mode = options.get("mode", self._mode)
        self._game.start(mode=mode, names=options.get("names"), seed=seed)

        info = self._game.get_info()
        info["throw_result"] = None
        return self._observe(), info

    def step(
        self,
        action: Union[np.ndarray, Tuple[float, float]]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Throw one ball.

        Args:
            action: [aim, power].

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        action = np.asarray(action, dtype=np.float32).reshape(-1)
        aim, power = float(action[0]), float(action[1])

        result = self._game.play_throw(
            aim_to_direction(aim), power, max_seconds=self._max_seconds
        )

        terminated = self._game.is_series_complete and not self._game.is_playing
        truncated = result is None and not terminated

        info = self._game.get_info()
        info["throw_result"] = result.to_dict() if result is not None else None

        if self._debug:
            logger.info(
                "Step: aim=%.3f power=%.2f pins=%s score=%d",
                aim, power,
                result.pins_knocked_down if result is not None else "-",
                info["current_score"]
            )
            if terminated:
                logger.info("TERMINATED: series complete (average %d)", info["combined_average"])

        return self._observe(), 0.0, terminated, truncated, info

    def close(self) -> None:
        """Clean up resources."""
        self._game.lane.clear()

    @property
    def game(self) -> BowlingGame:
        """Access to underlying game (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
