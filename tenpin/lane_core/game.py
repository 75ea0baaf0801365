"""
Bowling Game
============

Application context: owns the lane, scheduler, scorekeeper and throw state
machine, and drives them from a single tick loop.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple, Union

from tenpin.lane_core.config_loader import GameConfig, get_config
from tenpin.lane_core.physics_world import LaneWorld
from tenpin.lane_core.scheduler import TaskScheduler
from tenpin.lane_core.scorekeeper import GameMode, MultiPlayerScorekeeper
from tenpin.lane_core.state_snapshot import GameState, SnapshotBuilder
from tenpin.lane_core.throw_resolution import (
    ThrowObservers,
    ThrowResolutionStateMachine,
    ThrowResult,
    ThrowState,
)

logger = logging.getLogger(__name__)

# Longest sideways aim (radians off the lane's centre line) for aim_to_direction
MAX_AIM_ANGLE = 0.03

_IN_FLIGHT = (
    ThrowState.IN_MOTION,
    ThrowState.SETTLING_AFTER_STOP,
    ThrowState.SETTLING_AFTER_EXIT,
)


def aim_to_direction(aim: float) -> Tuple[float, float]:
    """
    Map a normalized aim in [-1, 1] to a unit throw direction.

    -1 aims for the left gutter edge at the pin deck, +1 for the right.
    """
    aim = max(-1.0, min(1.0, aim))
    angle = aim * MAX_AIM_ANGLE
    return (math.sin(angle), math.cos(angle))


class BowlingGame:
    """
    Main game simulation class.

    Orchestrates:
    - Lane physics
    - Deferred transitions (settle timers, inter-frame pauses)
    - Throw resolution
    - Multi-player scoring
    - State snapshots

    Nothing here is global: build one BowlingGame per playthrough and hand it
    (or its components) to whatever needs them.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        mode: Union[GameMode, str] = GameMode.SINGLES,
        names: Optional[Sequence[str]] = None,
        seed: Optional[int] = None,
        lane=None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            mode: Roster mode.
            names: Optional player names for the roster.
            seed: Seed for lane domain randomization.
            lane: Physics collaborator. A pymunk LaneWorld is created if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._seed = seed
        self._lane = lane if lane is not None else LaneWorld(config)
        self._scheduler = TaskScheduler()
        self._scorekeeper = MultiPlayerScorekeeper(mode, config, names)
        self._machine = ThrowResolutionStateMachine(
            lane=self._lane,
            scorekeeper=self._scorekeeper,
            scheduler=self._scheduler,
            config=config
        )
        self._snapshot_builder = SnapshotBuilder(config)
        self._sim_time: float = 0.0

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def lane(self):
        """Physics collaborator."""
        return self._lane

    @property
    def scorekeeper(self) -> MultiPlayerScorekeeper:
        return self._scorekeeper

    @property
    def machine(self) -> ThrowResolutionStateMachine:
        return self._machine

    @property
    def scheduler(self) -> TaskScheduler:
        return self._scheduler

    @property
    def observers(self) -> ThrowObservers:
        """Status / scorecard / power / throw-result callbacks."""
        return self._machine.observers

    @property
    def throw_state(self) -> ThrowState:
        return self._machine.state

    @property
    def is_playing(self) -> bool:
        return self._machine.is_playing

    @property
    def is_series_complete(self) -> bool:
        return self._scorekeeper.is_series_complete()

    @property
    def sim_time(self) -> float:
        """Simulated seconds since the last start/reset."""
        return self._sim_time

    def start(
        self,
        mode: Optional[Union[GameMode, str]] = None,
        names: Optional[Sequence[str]] = None,
        seed: Optional[int] = None
    ) -> GameState:
        """
        Start a new series.

        Args:
            mode: New roster mode; keeps the current roster if None.
            names: Player names for a new roster.
            seed: New domain randomization seed. Uses previous if None.

        Returns:
            Initial game state.
        """
        if seed is not None:
            self._seed = seed

        if mode is not None or names is not None:
            self._scorekeeper = MultiPlayerScorekeeper(
                mode if mode is not None else self._scorekeeper.mode,
                self._config,
                names
            )
            self._machine.scorekeeper = self._scorekeeper
        else:
            self._scorekeeper.reset()

        self._scheduler.reset()
        self._sim_time = 0.0
        self._lane.apply_domain_randomization(self._seed)
        self._machine.start()
        logger.debug("Started %s series", self._scorekeeper.mode.value)
        return self.get_game_state()

    def reset(self) -> GameState:
        """
        Discard every score and in-flight throw; keep playing from game 1.

        Replaying the same throws after reset reproduces the same scorecard.
        """
        playing = self._machine.is_playing
        self._scorekeeper.reset()
        self._scheduler.reset()
        self._sim_time = 0.0
        self._lane.apply_domain_randomization(self._seed)
        if playing:
            self._machine.start()
        else:
            self._machine.reset()
        return self.get_game_state()

    def throw(self, direction: Tuple[float, float], power: float) -> bool:
        """Launch the ball. Returns False if a throw is not allowed right now."""
        return self._machine.throw_ball(direction, power)

    def tick(self, dt: Optional[float] = None) -> None:
        """Advance the whole simulation by one frame."""
        if dt is None:
            dt = self._config.physics.dt
        self._machine.tick(dt)
        self._sim_time += min(max(0.0, dt), self._config.physics.max_frame_dt)

    def run_until_ready(self, max_seconds: float = 120.0) -> bool:
        """
        Tick until the next throw may be made or the series has ended.

        The state machine never times out on its own; ``max_seconds`` is the
        driver's guard for headless runs.

        Returns:
            False if the cap was reached first.
        """
        dt = self._config.physics.dt
        elapsed = 0.0
        while self._machine.is_playing and not self._machine.can_throw:
            if elapsed >= max_seconds:
                logger.warning(
                    "Lane not ready after %.1fs (state=%s)", elapsed, self._machine.state.value
                )
                return False
            self.tick(dt)
            elapsed += dt
        return True

    def play_throw(
        self,
        direction: Tuple[float, float],
        power: float,
        max_seconds: float = 120.0
    ) -> Optional[ThrowResult]:
        """
        Throw and simulate until the lane is ready again.

        Returns:
            The resolved ThrowResult, or None if the throw was rejected or did
            not resolve within ``max_seconds``.
        """
        if not self.throw(direction, power):
            return None

        if not self.run_until_ready(max_seconds) and self._machine.state in _IN_FLIGHT:
            return None
        return self._machine.last_result

    def get_game_state(self) -> GameState:
        """Snapshot for scoreboards and agents."""
        return self._snapshot_builder.build(self._scorekeeper, self._machine, self._lane)

    def get_info(self) -> dict:
        """Additional info dict for Gymnasium."""
        state = self.get_game_state()
        info = state.to_dict()
        info["series_complete"] = self.is_series_complete
        info["throw_state"] = state.throw_state
        info["sim_time"] = self._sim_time
        info["players"] = [
            {"name": p.name, "average": p.stream.series_average(), "score": p.stream.game_score()}
            for p in self._scorekeeper.players
        ]
        return info
