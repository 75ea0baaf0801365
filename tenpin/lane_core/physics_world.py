"""
Physics World
=============

Manages the pymunk Space for a top-down bowling lane: ball and pin bodies,
per-tick sensor predicates and the rack lifecycle operations.

Coordinates: x runs across the lane (0 on the centre line), y runs from the
foul line toward the pins. There is no gravity; per-body damping stands in
for rolling and sliding friction on the lane surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging
import math

import numpy as np
import pymunk

from tenpin.lane_core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)

# Collision types for pymunk
COLLISION_TYPE_BALL = 1
COLLISION_TYPE_PIN = 2


def _damped_velocity(retain_per_second: float) -> Callable:
    """Velocity integrator keeping ``retain_per_second`` of velocity each second."""
    def velocity_func(body, gravity, damping, dt):
        pymunk.Body.update_velocity(body, gravity, retain_per_second ** dt, dt)
    return velocity_func


@dataclass
class PinBody:
    """
    A pin in the physics world.

    ``number`` is the standard pin number (1 = head pin, 7-10 = back row) and
    never changes; the pin's handle is its position in LaneWorld.pins.
    """
    number: int
    spot: Tuple[float, float]
    body: pymunk.Body
    shape: pymunk.Circle

    @property
    def position(self) -> Tuple[float, float]:
        return self.body.position.x, self.body.position.y

    @property
    def speed(self) -> float:
        """Linear speed magnitude."""
        vx, vy = self.body.velocity
        return math.sqrt(vx*vx + vy*vy)

    @property
    def angular_velocity(self) -> float:
        return self.body.angular_velocity

    @property
    def displacement(self) -> float:
        """Distance from the pin's rack spot."""
        x, y = self.position
        return math.hypot(x - self.spot[0], y - self.spot[1])


@dataclass
class BallBody:
    """The bowling ball in the physics world."""
    body: pymunk.Body
    shape: pymunk.Circle

    @property
    def position(self) -> Tuple[float, float]:
        return self.body.position.x, self.body.position.y

    @property
    def speed(self) -> float:
        vx, vy = self.body.velocity
        return math.sqrt(vx*vx + vy*vy)


class LaneWorld:
    """
    Manages the pymunk lane simulation.

    Handles:
    - Ball and pin body creation and removal
    - Physics stepping
    - Sensor predicates polled once per tick by the throw state machine
    - Full and keep-standing rack resets
    - Domain randomization for robust training
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize lane world.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

        # Domain randomization factors (1.0 = no change)
        self._friction_factor = 1.0
        self._damping_factor = 1.0
        self._mass_factor = 1.0

        self._space = self._new_space()
        self._pins: List[PinBody] = []
        self._ball: Optional[BallBody] = None

    @staticmethod
    def _new_space() -> pymunk.Space:
        space = pymunk.Space()
        space.gravity = (0.0, 0.0)
        return space

    def apply_domain_randomization(self, seed: Optional[int] = None) -> None:
        """
        Vary friction, damping and mass slightly for the bodies created next.

        Same seed produces same randomization for fair evaluation.

        Args:
            seed: Random seed for reproducibility.
        """
        dr = self._config.domain_randomization
        if not dr.enabled:
            self._friction_factor = 1.0
            self._damping_factor = 1.0
            self._mass_factor = 1.0
            return

        rng = np.random.default_rng(seed)
        self._friction_factor = 1.0 + rng.uniform(-dr.friction_variance, dr.friction_variance)
        self._damping_factor = 1.0 + rng.uniform(-dr.damping_variance, dr.damping_variance)
        self._mass_factor = 1.0 + rng.uniform(-dr.mass_variance, dr.mass_variance)

    @property
    def space(self) -> pymunk.Space:
        """The pymunk Space instance."""
        return self._space

    @property
    def pins(self) -> List[PinBody]:
        """Pins on the deck, in handle order."""
        return self._pins

    @property
    def pin_count(self) -> int:
        return len(self._pins)

    @property
    def ball(self) -> Optional[BallBody]:
        return self._ball

    @property
    def has_ball(self) -> bool:
        return self._ball is not None

    def _make_circle(
        self,
        mass: float,
        radius: float,
        position: Tuple[float, float],
        damping: float,
        friction: float,
        elasticity: float,
        collision_type: int
    ) -> Tuple[pymunk.Body, pymunk.Circle]:
        mass = mass * self._mass_factor
        body = pymunk.Body(mass, pymunk.moment_for_circle(mass, 0, radius))
        body.position = position
        retain = min(1.0, damping * self._damping_factor)
        body.velocity_func = _damped_velocity(retain)

        shape = pymunk.Circle(body, radius)
        shape.friction = friction * self._friction_factor
        shape.elasticity = elasticity
        shape.collision_type = collision_type

        self._space.add(body, shape)
        return body, shape

    def create_pins(self) -> List[PinBody]:
        """Rack a full set of ten pins, replacing any already on the deck."""
        self.remove_pins()
        pin_cfg = self._config.pins
        for i, spot in enumerate(self._config.rack_positions):
            body, shape = self._make_circle(
                pin_cfg.mass, pin_cfg.radius, spot,
                pin_cfg.damping, pin_cfg.friction, pin_cfg.elasticity,
                COLLISION_TYPE_PIN
            )
            self._pins.append(PinBody(number=i + 1, spot=spot, body=body, shape=shape))
        return self._pins

    def remove_pins(self) -> None:
        for pin in self._pins:
            self._space.remove(pin.body, pin.shape)
        self._pins = []

    def remove_pin(self, index: int) -> PinBody:
        """Remove the pin at handle ``index``; later handles shift down by one."""
        pin = self._pins.pop(index)
        self._space.remove(pin.body, pin.shape)
        return pin

    def create_ball(self, position: Optional[Tuple[float, float]] = None) -> BallBody:
        """Place a fresh ball on the approach, replacing any existing ball."""
        self.remove_ball()
        if position is None:
            position = (0.0, self._config.lane.ball_start_y)
        ball_cfg = self._config.ball
        body, shape = self._make_circle(
            ball_cfg.mass, ball_cfg.radius, position,
            ball_cfg.damping, ball_cfg.friction, ball_cfg.elasticity,
            COLLISION_TYPE_BALL
        )
        self._ball = BallBody(body=body, shape=shape)
        return self._ball

    def remove_ball(self) -> None:
        if self._ball is not None:
            self._space.remove(self._ball.body, self._ball.shape)
            self._ball = None

    def stop_ball(self) -> None:
        """Zero the ball's motion."""
        if self._ball is not None:
            self._ball.body.velocity = (0, 0)
            self._ball.body.angular_velocity = 0
            self._ball.body.force = (0, 0)
            self._ball.body.torque = 0

    def reset_full(self) -> None:
        """
        Fresh rack of ten pins and a new ball.

        The pymunk Space is rebuilt too, so a full rack starts from identical
        solver state and a replayed throw reproduces the same result.
        """
        self._pins = []
        self._ball = None
        self._space = self._new_space()
        self.create_pins()
        self.create_ball()

    def reset_keep_standing(self, indices_to_remove: Iterable[int]) -> int:
        """
        Sweep away the given pins, leave the rest where they stand, new ball.

        Pins are removed in descending handle order so earlier removals never
        shift the handles still waiting to be removed.

        Returns:
            Number of pins removed.
        """
        removed = 0
        for index in sorted(set(indices_to_remove), reverse=True):
            if 0 <= index < len(self._pins):
                self.remove_pin(index)
                removed += 1
        self.create_ball()
        logger.debug("Swept %d pins, %d left standing", removed, len(self._pins))
        return removed

    def apply_throw(self, direction: Tuple[float, float], power: float) -> None:
        """
        Launch the ball.

        Args:
            direction: Unit vector (x across, y down-lane).
            power: Throw strength in [0, 1].

        Raises:
            RuntimeError: If there is no ball on the approach.
        """
        if self._ball is None:
            raise RuntimeError("No ball to throw")

        throw_cfg = self._config.throw
        dx, dy = direction
        impulse = (dx * power * throw_cfg.base_impulse, dy * power * throw_cfg.base_impulse)
        body = self._ball.body
        body.apply_impulse_at_world_point(impulse, body.position)
        body.angular_velocity = -dx * power * throw_cfg.hook_spin

    def step(self, dt: Optional[float] = None) -> None:
        """
        Advance physics simulation by one timestep.

        Args:
            dt: Timestep duration. Uses config default if None.
        """
        if dt is None:
            dt = self._config.physics.dt

        substeps = self._config.physics.substeps
        for _ in range(substeps):
            self._space.step(dt / substeps)

    # --- Sensors ---------------------------------------------------------

    def _off_deck(self, x: float, y: float) -> bool:
        return abs(x) > self._config.lane.half_width or y > self._config.pit_y

    def is_pin_down(self, index: int) -> bool:
        """Pin has been knocked off its spot or off the deck."""
        pin = self._pins[index]
        if pin.displacement > self._config.pins.down_displacement:
            return True
        return self._off_deck(*pin.position)

    def is_pin_moving(self, index: int) -> bool:
        pin = self._pins[index]
        pin_cfg = self._config.pins
        return (
            pin.speed > pin_cfg.moving_speed
            or abs(pin.angular_velocity) > pin_cfg.moving_angular_speed
        )

    def is_ball_at_rest(self) -> bool:
        if self._ball is None:
            return True
        return self._ball.speed < self._config.ball.rest_speed

    def has_ball_exited_bounds(self) -> bool:
        """Ball is in a gutter, in the pit, or has rolled back off the approach."""
        if self._ball is None:
            return False
        x, y = self._ball.position
        if self._off_deck(x, y):
            return True
        return y < self._config.lane.approach_end_y

    # --- Observation helpers ----------------------------------------------

    def standing_mask(self) -> np.ndarray:
        """(10,) bool array by pin number: True where that pin is on the deck and up."""
        mask = np.zeros(len(self._config.rack_positions), dtype=bool)
        for i, pin in enumerate(self._pins):
            if not self.is_pin_down(i):
                mask[pin.number - 1] = True
        return mask

    def pin_positions(self) -> Dict[int, Tuple[float, float]]:
        """Position of each pin still on the deck, by pin number."""
        return {pin.number: pin.position for pin in self._pins}

    def clear(self) -> None:
        """Remove every body from the world."""
        self.remove_ball()
        self.remove_pins()
