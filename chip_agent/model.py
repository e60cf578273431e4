from __future__ import annotations

from dataclasses import dataclass
from typing import Final, List, Tuple

from torch import nn, Tensor
import torch.nn.functional as F

from .codec import POLICY_STATE_DIM, VALUE_STATE_DIM


@dataclass
class ValueNetworkConfig:
    """
    Q-network for the value-based agent.

    Input: encoded ChipState (10 features).
    Output: one expected return per ChipAction.
    """
    state_dim: int = VALUE_STATE_DIM
    action_dim: int = 4
    hidden_dims: Tuple[int, ...] = (128, 64)


@dataclass
class PolicyNetworkConfig:
    """
    Policy network for the actor-critic agent.

    Input: wide encoded ChipState (30 features, includes layout).
    Output: probability distribution over the 8 policy actions.
    """
    state_dim: int = POLICY_STATE_DIM
    action_dim: int = 8
    hidden_dims: Tuple[int, ...] = (128, 64)


def _mlp(in_dim: int, hidden_dims: Tuple[int, ...], out_dim: int) -> nn.Sequential:
    layers: List[nn.Module] = []
    for hidden in hidden_dims:
        layers.append(nn.Linear(in_dim, hidden))
        layers.append(nn.ReLU())
        in_dim = hidden
    layers.append(nn.Linear(in_dim, out_dim))
    return nn.Sequential(*layers)


class ValueNetwork(nn.Module):
    """
    Feed-forward Q(s, ·) approximator with a linear output head.
    """

    def __init__(self, config: ValueNetworkConfig) -> None:
        super().__init__()
        self.config: Final = config
        self.net = _mlp(config.state_dim, config.hidden_dims, config.action_dim)

    def forward(self, states: Tensor) -> Tensor:
        """
        Args:
            states: [batch, state_dim] encoded states.

        Returns:
            q_values: [batch, action_dim]
        """
        return self.net(states)


class PolicyNetwork(nn.Module):
    """
    Feed-forward policy π(a | s) with a softmax output.

    The same output doubles as the critic signal during training (see
    PolicyAgent.train_with_ppo); there is no separate value head.
    """

    def __init__(self, config: PolicyNetworkConfig) -> None:
        super().__init__()
        self.config: Final = config
        self.net = _mlp(config.state_dim, config.hidden_dims, config.action_dim)

    def forward(self, states: Tensor) -> Tensor:
        """
        Args:
            states: [batch, state_dim] encoded states.

        Returns:
            probs: [batch, action_dim], rows sum to 1.
        """
        return F.softmax(self.net(states), dim=-1)
