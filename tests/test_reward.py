# tests/test_reward.py
from __future__ import annotations

import math
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chip_design_sim import ChipState, PerformanceMetrics, RewardModel, RewardWeights


def test_default_state_reward_matches_weighted_sum() -> None:
    state = ChipState.default()
    expected = (
        0.3 * 0.75
        + 0.2 * 0.80
        + 0.2 * (1.0 - 0.20)
        + 0.3 * 0.90
        + 0.1 * (0.8 + 0.75 + 0.9) / 3.0
    )
    assert math.isclose(RewardModel().reward(state), expected, rel_tol=1e-9)


def test_reward_is_deterministic() -> None:
    state = ChipState.default()
    model = RewardModel()
    assert model.reward(state) == model.reward(state)


def test_hotter_chip_scores_lower() -> None:
    cool = ChipState.default()
    hot = cool.evolve(performance=PerformanceMetrics(75.0, 80.0, 90.0, 90.0))
    model = RewardModel()
    assert model.reward(hot) < model.reward(cool)
    assert model.improvement(cool, hot) < 0.0


def test_custom_weights_isolate_one_term() -> None:
    weights = RewardWeights(POWER=1.0, AREA=0.0, THERMAL=0.0, SIGNAL=0.0, QUALITY_BONUS=0.0)
    state = ChipState.default().evolve(
        performance=PerformanceMetrics(42.0, 10.0, 10.0, 10.0)
    )
    assert math.isclose(RewardModel(weights).reward(state), 0.42, rel_tol=1e-9)
