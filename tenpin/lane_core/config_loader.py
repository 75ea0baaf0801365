"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml


@dataclass(frozen=True)
class LaneConfig:
    """Lane geometry and play-volume bounds."""
    half_width: float        # Gutter begins beyond this |x|
    foul_line_y: float
    ball_start_y: float
    approach_end_y: float    # Ball behind this line has rolled off the approach
    head_pin_y: float
    pit_margin: float        # Pit starts this far behind the back row


@dataclass(frozen=True)
class BallConfig:
    """Bowling ball body parameters."""
    radius: float
    mass: float
    damping: float
    friction: float
    elasticity: float
    rest_speed: float


@dataclass(frozen=True)
class PinConfig:
    """Pin body parameters and knockdown thresholds."""
    radius: float
    mass: float
    damping: float
    friction: float
    elasticity: float
    spacing: float
    down_displacement: float
    moving_speed: float
    moving_angular_speed: float


@dataclass(frozen=True)
class PhysicsConfig:
    """Simulation stepping parameters."""
    dt: float
    substeps: int
    max_frame_dt: float


@dataclass(frozen=True)
class TimingConfig:
    """Settle timers and deferred transition pauses (seconds)."""
    settle_time: float
    inter_frame_pause: float
    next_game_pause: float
    max_moving_pins: int


@dataclass(frozen=True)
class ThrowConfig:
    """Throw impulse parameters."""
    base_impulse: float
    min_power: float
    hook_spin: float


@dataclass(frozen=True)
class SeriesConfig:
    """Series length."""
    games_per_series: int


@dataclass(frozen=True)
class ObservationConfig:
    """Observation packing parameters."""
    include_pin_positions: bool


@dataclass(frozen=True)
class DomainRandomizationConfig:
    """Seeded per-reset variation of body parameters."""
    enabled: bool
    friction_variance: float   # ±fraction (e.g., 0.05 = ±5%)
    damping_variance: float
    mass_variance: float


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    lane: LaneConfig
    ball: BallConfig
    pins: PinConfig
    physics: PhysicsConfig
    timing: TimingConfig
    throw: ThrowConfig
    series: SeriesConfig
    observation: ObservationConfig
    domain_randomization: DomainRandomizationConfig

    @property
    def back_row_y(self) -> float:
        """Y coordinate of the 7-8-9-10 row."""
        return self.lane.head_pin_y + 3 * self.pins.spacing * 0.866

    @property
    def pit_y(self) -> float:
        """Y coordinate past which the ball has dropped into the pit."""
        return self.back_row_y + self.lane.pit_margin

    @property
    def rack_positions(self) -> Tuple[Tuple[float, float], ...]:
        """Spot for each of the ten pins, head pin first, row by row."""
        s = self.pins.spacing
        y0 = self.lane.head_pin_y
        positions = []
        for row in range(4):
            y = y0 + row * s * 0.866
            for k in range(row + 1):
                x = (k - row / 2.0) * s
                positions.append((x, y))
        return tuple(positions)


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if config.lane.head_pin_y <= config.lane.foul_line_y:
        raise ValueError(
            f"head_pin_y ({config.lane.head_pin_y}) must be beyond "
            f"foul_line_y ({config.lane.foul_line_y})"
        )

    if config.lane.approach_end_y >= config.lane.ball_start_y:
        raise ValueError(
            f"approach_end_y ({config.lane.approach_end_y}) must be behind "
            f"ball_start_y ({config.lane.ball_start_y})"
        )

    # Back row must fit on the lane
    rack_half_width = 1.5 * config.pins.spacing + config.pins.radius
    if rack_half_width > config.lane.half_width:
        raise ValueError(
            f"Pin rack ({rack_half_width:.3f}) is wider than the lane "
            f"half width ({config.lane.half_width})"
        )

    for name, damping in (("ball", config.ball.damping), ("pins", config.pins.damping)):
        if not 0.0 < damping <= 1.0:
            raise ValueError(f"{name}.damping must be in (0, 1], got {damping}")

    if config.physics.substeps < 1:
        raise ValueError(f"physics.substeps must be >= 1, got {config.physics.substeps}")

    if not 0.0 <= config.throw.min_power <= 1.0:
        raise ValueError(f"throw.min_power must be in [0, 1], got {config.throw.min_power}")

    if config.series.games_per_series < 1:
        raise ValueError(
            f"series.games_per_series must be >= 1, got {config.series.games_per_series}"
        )

    if config.timing.max_moving_pins < 0:
        raise ValueError(
            f"timing.max_moving_pins must be >= 0, got {config.timing.max_moving_pins}"
        )


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    lane_data = raw["lane"]
    lane = LaneConfig(
        half_width=float(lane_data["half_width"]),
        foul_line_y=float(lane_data.get("foul_line_y", 0.0)),
        ball_start_y=float(lane_data["ball_start_y"]),
        approach_end_y=float(lane_data["approach_end_y"]),
        head_pin_y=float(lane_data["head_pin_y"]),
        pit_margin=float(lane_data.get("pit_margin", 0.8))
    )

    ball_data = raw["ball"]
    ball = BallConfig(
        radius=float(ball_data["radius"]),
        mass=float(ball_data["mass"]),
        damping=float(ball_data["damping"]),
        friction=float(ball_data.get("friction", 0.3)),
        elasticity=float(ball_data.get("elasticity", 0.5)),
        rest_speed=float(ball_data["rest_speed"])
    )

    pin_data = raw["pins"]
    pins = PinConfig(
        radius=float(pin_data["radius"]),
        mass=float(pin_data["mass"]),
        damping=float(pin_data["damping"]),
        friction=float(pin_data.get("friction", 0.3)),
        elasticity=float(pin_data.get("elasticity", 0.5)),
        spacing=float(pin_data["spacing"]),
        down_displacement=float(pin_data["down_displacement"]),
        moving_speed=float(pin_data.get("moving_speed", 0.25)),
        moving_angular_speed=float(pin_data.get("moving_angular_speed", 0.8))
    )

    physics_data = raw["physics"]
    physics = PhysicsConfig(
        dt=float(physics_data["dt"]),
        substeps=int(physics_data.get("substeps", 1)),
        max_frame_dt=float(physics_data.get("max_frame_dt", 0.1))
    )

    timing_data = raw["timing"]
    timing = TimingConfig(
        settle_time=float(timing_data.get("settle_time", 0.8)),
        inter_frame_pause=float(timing_data.get("inter_frame_pause", 1.5)),
        next_game_pause=float(timing_data.get("next_game_pause", 2.0)),
        max_moving_pins=int(timing_data.get("max_moving_pins", 1))
    )

    throw_data = raw["throw"]
    throw = ThrowConfig(
        base_impulse=float(throw_data["base_impulse"]),
        min_power=float(throw_data.get("min_power", 0.3)),
        hook_spin=float(throw_data.get("hook_spin", 3.0))
    )

    series_data = raw.get("series", {})
    series = SeriesConfig(
        games_per_series=int(series_data.get("games_per_series", 3))
    )

    obs_data = raw.get("observation", {})
    observation = ObservationConfig(
        include_pin_positions=bool(obs_data.get("include_pin_positions", True))
    )

    # Parse domain randomization (optional section)
    dr_data = raw.get("domain_randomization", {})
    domain_randomization = DomainRandomizationConfig(
        enabled=bool(dr_data.get("enabled", False)),
        friction_variance=float(dr_data.get("friction_variance", 0.05)),
        damping_variance=float(dr_data.get("damping_variance", 0.03)),
        mass_variance=float(dr_data.get("mass_variance", 0.04))
    )

    config = GameConfig(
        lane=lane,
        ball=ball,
        pins=pins,
        physics=physics,
        timing=timing,
        throw=throw,
        series=series,
        observation=observation,
        domain_randomization=domain_randomization
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
