"""
Shared fixtures: configuration, and a scripted stand-in for LaneWorld so the
throw state machine can be driven without running pymunk.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pytest

from tenpin.lane_core.config_loader import load_config
from tenpin.lane_core.scheduler import TaskScheduler
from tenpin.lane_core.scorekeeper import GameMode, MultiPlayerScorekeeper
from tenpin.lane_core.throw_resolution import ThrowResolutionStateMachine


@dataclass
class ScriptedPin:
    number: int
    position: Tuple[float, float]


@dataclass
class ScriptedBall:
    position: Tuple[float, float] = (0.0, -0.5)


@dataclass
class Outcome:
    """What the lane reports on the first step after a throw."""
    pins: int
    exit: bool = False


class ScriptedLane:
    """
    Lane with the LaneWorld sensor/lifecycle surface and no physics.

    Tests either poke the sensor state directly (``down``, ``moving``,
    ``at_rest``, ``exited``) or queue outcomes that are applied on the first
    step after each throw. With nothing queued the ball keeps rolling.
    """

    def __init__(self, config):
        self._config = config
        self.pins: List[ScriptedPin] = []
        self.ball: Optional[ScriptedBall] = None
        self.down = set()
        self.moving = set()
        self.at_rest = True
        self.exited = False

        self.outcomes = deque()
        self._pending: Optional[Outcome] = None

        self.throws = []
        self.steps = 0
        self.full_resets = 0
        self.keep_resets = 0
        self.removed_batches = []
        self.seeds = []

    # --- Scripting ---------------------------------------------------------

    def queue(self, *counts: int, exit: bool = False) -> None:
        """Queue one outcome per pin count."""
        for pins in counts:
            self.outcomes.append(Outcome(pins=pins, exit=exit))

    def knock(self, *handles: int) -> None:
        self.down.update(handles)

    def knock_count(self, pins: int) -> None:
        """Knock down the first ``pins`` standing handles."""
        standing = [i for i in range(len(self.pins)) if i not in self.down]
        self.down.update(standing[:pins])

    # --- LaneWorld surface -------------------------------------------------

    @property
    def pin_count(self) -> int:
        return len(self.pins)

    @property
    def has_ball(self) -> bool:
        return self.ball is not None

    def apply_domain_randomization(self, seed=None) -> None:
        self.seeds.append(seed)

    def step(self, dt=None) -> None:
        self.steps += 1
        if self._pending is not None:
            outcome, self._pending = self._pending, None
            self.knock_count(outcome.pins)
            if outcome.exit:
                self.exited = True
            else:
                self.at_rest = True

    def apply_throw(self, direction, power) -> None:
        if self.ball is None:
            raise RuntimeError("No ball to throw")
        self.throws.append((direction, power))
        self.at_rest = False
        if self.outcomes:
            self._pending = self.outcomes.popleft()

    def is_pin_down(self, index: int) -> bool:
        return index in self.down

    def is_pin_moving(self, index: int) -> bool:
        return index in self.moving

    def is_ball_at_rest(self) -> bool:
        return self.ball is None or self.at_rest

    def has_ball_exited_bounds(self) -> bool:
        return self.ball is not None and self.exited

    def stop_ball(self) -> None:
        self.at_rest = True

    def remove_ball(self) -> None:
        self.ball = None

    def create_ball(self, position=None) -> ScriptedBall:
        self.ball = ScriptedBall() if position is None else ScriptedBall(position)
        self.at_rest = True
        self.exited = False
        return self.ball

    def reset_full(self) -> None:
        self.full_resets += 1
        self.pins = [
            ScriptedPin(number=i + 1, position=spot)
            for i, spot in enumerate(self._config.rack_positions)
        ]
        self.down.clear()
        self.moving.clear()
        self.create_ball()

    def reset_keep_standing(self, indices_to_remove: Iterable[int]) -> int:
        self.keep_resets += 1
        order = sorted(set(indices_to_remove), reverse=True)
        self.removed_batches.append(order)
        removed = 0
        for index in order:
            if 0 <= index < len(self.pins):
                self.pins.pop(index)
                removed += 1
        self.down.clear()
        self.moving.clear()
        self.create_ball()
        return removed

    def clear(self) -> None:
        self.pins = []
        self.ball = None


def run_for(machine, seconds: float, dt: float = 0.05) -> None:
    """Tick a state machine (or BowlingGame) for ``seconds`` of simulated time."""
    for _ in range(int(round(seconds / dt))):
        machine.tick(dt)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def lane(config):
    return ScriptedLane(config)


@pytest.fixture
def scheduler():
    return TaskScheduler()


@pytest.fixture
def scorekeeper(config):
    return MultiPlayerScorekeeper(GameMode.SINGLES, config)


@pytest.fixture
def machine(lane, scorekeeper, scheduler, config):
    machine = ThrowResolutionStateMachine(
        lane=lane,
        scorekeeper=scorekeeper,
        scheduler=scheduler,
        config=config
    )
    machine.start()
    return machine


@pytest.fixture
def run():
    return run_for


@pytest.fixture
def make_lane(config):
    """Factory for extra scripted lanes."""
    return lambda: ScriptedLane(config)
