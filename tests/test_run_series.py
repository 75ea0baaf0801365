"""
Tests for the series harness and the baseline bowler.
"""

import importlib.util
import json
from pathlib import Path

import numpy as np
import pytest

from tenpin.evaluation import run_series
from tenpin.evaluation.run_series import evaluate_bowler, load_bowler, save_results
from tenpin.lane_core.game import aim_to_direction

BASELINE = Path(__file__).resolve().parent.parent / "bowlers" / "baseline_center"


class TestLoadBowler:
    """Test bowler discovery."""

    def test_load_baseline_directory(self):
        act = load_bowler(str(BASELINE))
        obs = {
            "pin_standing": np.ones(10, dtype=np.int8),
            "pin_x": np.zeros(10, dtype=np.float32),
        }

        aim, power = act(obs)
        assert -1.0 <= aim <= 1.0
        assert power == 1.0

    def test_standalone_act(self, tmp_path):
        agent_file = tmp_path / "agent.py"
        agent_file.write_text("def act(obs):\n    return (0.0, 0.5)\n")

        act = load_bowler(str(agent_file))
        assert act({}) == (0.0, 0.5)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bowler(str(tmp_path / "nobody"))

    def test_module_without_act(self, tmp_path):
        agent_file = tmp_path / "agent.py"
        agent_file.write_text("VALUE = 1\n")

        with pytest.raises(AttributeError):
            load_bowler(str(agent_file))


class TestEvaluate:
    """Test series summaries with a stubbed series player."""

    @pytest.fixture
    def fake_series(self, monkeypatch):
        def fake_play_series(bowler_fn, seed, mode, verbose=False):
            return run_series.SeriesResult(
                seed=seed,
                player_averages=[100 + seed],
                game_scores=[[100 + seed] * 3],
                combined_average=100 + seed,
                throws=60,
                completed=True,
                elapsed_time=0.0
            )
        monkeypatch.setattr(run_series, "play_series", fake_play_series)

    def test_summary_statistics(self, fake_series):
        summary = evaluate_bowler(lambda obs: (0.0, 1.0), seeds=[0, 2, 4], verbose=False)

        assert summary.mean_average == pytest.approx(102.0)
        assert summary.min_average == 100
        assert summary.max_average == 104
        assert summary.median_average == pytest.approx(102.0)
        assert len(summary.results) == 3

    def test_empty_seeds(self, fake_series):
        with pytest.raises(ValueError):
            evaluate_bowler(lambda obs: (0.0, 1.0), seeds=[], verbose=False)

    def test_save_results(self, fake_series, tmp_path):
        summary = evaluate_bowler(lambda obs: (0.0, 1.0), seeds=[1], verbose=False)
        output = tmp_path / "results.json"
        save_results(summary, "stub", str(output))

        data = json.loads(output.read_text())
        assert data["bowler"] == "stub"
        assert data["results"][0]["player_averages"] == [101]

    def test_main(self, fake_series, tmp_path):
        output = tmp_path / "out.json"
        code = run_series.main([
            "--bowler", str(BASELINE), "--seeds", "3", "--quiet", "--output", str(output)
        ])

        assert code == 0
        assert json.loads(output.read_text())["mean_average"] == pytest.approx(103.0)

    def test_main_bad_bowler(self, tmp_path):
        assert run_series.main(["--bowler", str(tmp_path / "missing")]) == 1


class TestBaselineAim:
    """Test the baseline bowler's aim geometry."""

    @pytest.fixture
    def baseline_module(self):
        spec = importlib.util.spec_from_file_location("baseline_center_agent", BASELINE / "agent.py")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def test_leave_aim_reaches_pin_line(self, baseline_module, config):
        """Aiming at a lone standing pin sends the ball across its x at the head pin."""
        standing = np.zeros(10, dtype=np.int8)
        standing[5] = 1
        pin_x = np.zeros(10, dtype=np.float32)
        pin_x[5] = 0.3

        aim, _ = baseline_module.act({"pin_standing": standing, "pin_x": pin_x})
        dx, dy = aim_to_direction(aim)
        travel = config.lane.head_pin_y - config.lane.ball_start_y

        assert travel * dx / dy == pytest.approx(0.3, abs=1e-3)
