# tests/test_policy_agent.py
from __future__ import annotations

import math
import pathlib
import random
import sys

import pytest
import torch
from torch import nn

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chip_design_sim import (
    ChipAction,
    ChipState,
    ChipTransitionModel,
    EncodingError,
    PolicyAction,
    RewardModel,
)
from chip_agent import ModelStore, PolicyAgent, PolicyAgentConfig
from chip_agent.policy_agent import POLICY_MODEL_SLOT


class _BrokenNetwork(nn.Module):
    def forward(self, states: torch.Tensor) -> torch.Tensor:
        raise RuntimeError("boom")


class _FixedPolicy(nn.Module):
    """Always prefers the highest action index."""

    def forward(self, states: torch.Tensor) -> torch.Tensor:
        logits = torch.arange(8, dtype=torch.float32).expand(states.shape[0], 8)
        return torch.softmax(logits, dim=-1)


def _agent(tmp_path: pathlib.Path, **config) -> PolicyAgent:
    torch.manual_seed(0)
    return PolicyAgent(
        config=PolicyAgentConfig(**config),
        store=ModelStore(root=tmp_path),
    )


def _params(module: nn.Module) -> dict:
    return {k: v.detach().clone() for k, v in module.state_dict().items()}


def _next_state() -> ChipState:
    model = ChipTransitionModel(rng=random.Random(0))
    return model.apply_action(ChipState.default(), ChipAction.ADD_PROCESSOR)


def test_get_next_action_returns_policy_action(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    assert isinstance(agent.get_next_action(), PolicyAction)


def test_inference_failure_falls_back_to_optimize(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    agent.model = _BrokenNetwork()
    assert agent.get_next_action() is PolicyAction.OPTIMIZE_CONNECTIONS


def test_malformed_state_still_raises(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    agent.observe(ChipState(quantum_coherence=float("inf")))
    with pytest.raises(EncodingError):
        agent.get_next_action()


def test_action_mask_limits_argmax(tmp_path: pathlib.Path) -> None:
    unmasked = _agent(tmp_path)
    unmasked.model = _FixedPolicy()
    assert unmasked.get_next_action() is PolicyAction.RESERVED_7

    masked = _agent(tmp_path, action_mask=(0, 1, 2, 3))
    masked.model = _FixedPolicy()
    assert masked.get_next_action() is PolicyAction.REMOVE_COMPONENT


def test_train_step_updates_parameters(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    before = _params(agent.model)
    state = ChipState.default()
    next_state = _next_state()

    loss = agent.train_with_ppo(state, 1, RewardModel().reward(next_state), next_state)

    assert isinstance(loss, float)
    assert math.isfinite(loss)
    after = agent.model.state_dict()
    assert any(not torch.equal(before[k], after[k]) for k in before)


def test_failed_train_step_returns_zero(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    original = agent.model
    before = _params(original)
    agent.model = _BrokenNetwork()

    loss = agent.train_with_ppo(ChipState.default(), 2, 0.5, _next_state())

    assert loss == 0.0
    for key, value in original.state_dict().items():
        assert torch.equal(value, before[key])


def test_calculate_reward_matches_reward_model(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    state = _next_state()
    assert agent.calculate_reward(state) == RewardModel().reward(state)


def test_critic_value_is_a_probability(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    value = agent.critic_value(ChipState.default())
    assert 1.0 / 8.0 <= value <= 1.0


def test_save_and_load_round_trip(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    agent.save()
    saved = _params(agent.model)

    torch.manual_seed(99)
    other = PolicyAgent(store=ModelStore(root=tmp_path))
    assert other.load() is True
    for key, value in other.model.state_dict().items():
        assert torch.equal(value, saved[key])


def test_load_corrupt_slot_is_fail_soft(tmp_path: pathlib.Path) -> None:
    agent = _agent(tmp_path)
    (tmp_path / f"{POLICY_MODEL_SLOT}.pt").write_bytes(b"\x00garbage")
    before = _params(agent.model)

    assert agent.load() is False
    for key, value in agent.model.state_dict().items():
        assert torch.equal(value, before[key])
