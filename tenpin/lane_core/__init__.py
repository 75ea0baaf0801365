"""
Lane Core - scoring, lane physics and throw resolution.

Main exports:
- BowlingEnv: Gymnasium environment, one step per throw
- BowlingGame: Application context wiring lane, scheduler, scorekeeper and state machine
- ThrowResolutionStateMachine: Turns a physical throw into a scored throw
- GameScoringEngine / PlayerScoringStream / MultiPlayerScorekeeper: Scoring layers
- GameConfig: Configuration loaded from game_config.yaml
"""

from tenpin.lane_core.config_loader import GameConfig, get_config, load_config
from tenpin.lane_core.scorecard import FrameScore, GameRecord, SeriesRecord, frame_marks
from tenpin.lane_core.scoring import GameScoringEngine, MalformedPinCount, ScoringError
from tenpin.lane_core.series import PlayerScoringStream
from tenpin.lane_core.scorekeeper import GameMode, MultiPlayerScorekeeper, Player
from tenpin.lane_core.scheduler import TaskScheduler
from tenpin.lane_core.physics_world import LaneWorld
from tenpin.lane_core.throw_resolution import (
    RackReset,
    ThrowResolutionStateMachine,
    ThrowResult,
    ThrowState,
    plan_next_rack,
)
from tenpin.lane_core.state_snapshot import GameState
from tenpin.lane_core.game import BowlingGame, aim_to_direction
from tenpin.lane_core.env_gym import BowlingEnv

__all__ = [
    "GameConfig",
    "get_config",
    "load_config",
    "FrameScore",
    "GameRecord",
    "SeriesRecord",
    "frame_marks",
    "GameScoringEngine",
    "MalformedPinCount",
    "ScoringError",
    "PlayerScoringStream",
    "GameMode",
    "MultiPlayerScorekeeper",
    "Player",
    "TaskScheduler",
    "LaneWorld",
    "RackReset",
    "ThrowResolutionStateMachine",
    "ThrowResult",
    "ThrowState",
    "plan_next_rack",
    "GameState",
    "BowlingGame",
    "aim_to_direction",
    "BowlingEnv",
]
