"""
Tests for Gymnasium environment API.
"""

import numpy as np
import pytest

from tenpin.lane_core.env_gym import BowlingEnv


@pytest.fixture
def env():
    env = BowlingEnv()
    yield env
    env.close()


class TestBowlingEnv:
    """Test single environment API."""

    def test_reset_returns_obs_and_info(self, env):
        """Reset should return (observation, info) tuple."""
        result = env.reset(seed=42)

        assert isinstance(result, tuple)
        assert len(result) == 2

        obs, info = result
        assert isinstance(obs, dict)
        assert isinstance(info, dict)
        assert info["throw_result"] is None

    def test_observation_structure(self, env):
        """Observation should have expected keys and shapes."""
        obs, _ = env.reset(seed=42)

        for key in ("player_index", "game_number", "frame_number", "ball_number",
                    "pins_remaining", "current_score"):
            assert key in obs
            assert obs[key].shape == ()

        assert obs["frame_scores"].shape == (10,)
        assert obs["pin_standing"].shape == (10,)
        assert obs["pin_x"].shape == (10,)
        assert obs["pin_y"].shape == (10,)

    def test_observation_in_space(self, env):
        obs, _ = env.reset(seed=0)
        assert env.observation_space.contains(obs)

    def test_action_space(self, env):
        assert env.action_space.shape == (2,)
        assert env.action_space.low.tolist() == [-1.0, 0.0]
        assert env.action_space.high.tolist() == [1.0, 1.0]

    def test_step_returns_five_tuple(self, env):
        """Step should return (obs, reward, terminated, truncated, info)."""
        env.reset(seed=42)
        result = env.step(np.array([0.0, 1.0], dtype=np.float32))

        assert len(result) == 5
        obs, reward, terminated, truncated, info = result

        assert reward == 0.0
        assert terminated is False
        assert truncated is False
        assert info["throw_result"]["pins_knocked_down"] >= 1
        assert env.observation_space.contains(obs)

    def test_gutter_step_advances_ball(self, env):
        env.reset(seed=1)
        obs, _, _, _, info = env.step([1.0, 1.0])

        assert info["throw_result"]["pins_knocked_down"] == 0
        assert int(obs["ball_number"]) == 2
        assert int(obs["pins_remaining"]) == 10

    def test_reset_mode_option(self, env):
        """Mode can be changed per episode through options."""
        obs, info = env.reset(seed=0, options={"mode": "doubles"})

        assert len(info["players"]) == 2
        assert info["player_name"] == "Athlete"
        assert int(obs["player_index"]) == 0

    def test_reset_clears_scores(self, env):
        env.reset(seed=5)
        env.step([0.0, 1.0])
        obs, info = env.reset(seed=5)

        assert info["current_score"] == 0
        assert int(obs["frame_number"]) == 1
        assert int(obs["ball_number"]) == 1
        assert obs["pin_standing"].all()
