"""
Baseline Center Bowler
======================

Provides both forms the series harness accepts:
1. A `BowlerAgent` class with an `act(obs) -> (aim, power)` method
2. A standalone `act(obs) -> (aim, power)` function

Aim is in [-1, 1] (left to right edge of the pin deck), power in [0, 1].

Strategy: full rack -> the pocket just right of the head pin; leave ->
the centroid of the standing pins. A little seeded noise keeps games varied.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple
import math
import numpy as np

from tenpin.lane_core.config_loader import get_config
from tenpin.lane_core.game import MAX_AIM_ANGLE


def _aim_scale() -> float:
    """Aim units per metre of sideways offset at the head pin."""
    lane = get_config().lane
    return 1.0 / ((lane.head_pin_y - lane.ball_start_y) * math.tan(MAX_AIM_ANGLE))


_AIM_SCALE = _aim_scale()

POCKET_X = 0.07
AIM_NOISE = 0.04


class BowlerAgent:
    """Aims for the pocket on a full rack and at the leave otherwise."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def act(self, obs: Dict[str, np.ndarray]) -> Tuple[float, float]:
        """
        Choose a throw.

        Args:
            obs: Observation dict from BowlingEnv.

        Returns:
            (aim, power) tuple.
        """
        aim = _target_aim(obs) + float(self.rng.normal(0.0, AIM_NOISE))
        return float(np.clip(aim, -1.0, 1.0)), 1.0

    def reset(self) -> None:
        """Called when a new series starts (optional)."""
        pass


def _target_aim(obs: Dict[str, np.ndarray]) -> float:
    standing = np.asarray(obs["pin_standing"], dtype=bool)
    if "pin_x" not in obs or standing.all() or not standing.any():
        return POCKET_X * _AIM_SCALE
    target_x = float(np.mean(np.asarray(obs["pin_x"])[standing]))
    return target_x * _AIM_SCALE


def act(obs: Dict[str, np.ndarray]) -> Tuple[float, float]:
    """Standalone act function (alternative to class-based bowler)."""
    return float(np.clip(_target_aim(obs), -1.0, 1.0)), 1.0
