from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

import torch
from torch import Tensor

from chip_design_sim.entities import ChipState, PolicyAction
from chip_design_sim.reward import RewardModel
from .codec import POLICY_CODEC, StateCodec
from .model import PolicyNetwork, PolicyNetworkConfig
from .storage import ModelStore, restore_into

logger = logging.getLogger(__name__)

POLICY_MODEL_SLOT = "alphachip-model"
POLICY_FALLBACK_ACTION = PolicyAction.OPTIMIZE_CONNECTIONS


@dataclass
class PolicyAgentConfig:
    gamma: float = 0.99
    learning_rate: float = 0.01
    # Optional subset of action indices the arg-max may pick from.
    action_mask: Optional[Tuple[int, ...]] = None
    device: str = "cpu"


class PolicyAgent:
    """
    Actor-critic style agent over the 30-feature layout encoding.

    A single softmax network serves both as the action distribution and,
    degenerately, as the critic: the advantage is formed from the full
    output distributions of the current and next state, and both loss terms
    share one forward pass per state.
    """

    def __init__(
        self,
        initial_state: Optional[ChipState] = None,
        config: Optional[PolicyAgentConfig] = None,
        network_config: Optional[PolicyNetworkConfig] = None,
        store: Optional[ModelStore] = None,
        codec: StateCodec = POLICY_CODEC,
        reward_model: Optional[RewardModel] = None,
    ) -> None:
        self.config = config or PolicyAgentConfig()
        self.network_config = network_config or PolicyNetworkConfig()
        self.codec = codec
        self.reward_model = reward_model or RewardModel()
        self.device = torch.device(self.config.device)
        self.store = store or ModelStore(device=self.device)

        self.processor_state: ChipState = initial_state or ChipState.default()
        self.model = PolicyNetwork(self.network_config).to(self.device)
        self.optimizer = torch.optim.Adam(
            self.model.parameters(), lr=self.config.learning_rate
        )

    def observe(self, state: ChipState) -> None:
        """Replace the internal design the policy acts on."""
        self.processor_state = state

    def _encode(self, state: ChipState) -> Tensor:
        return self.codec.encode(state).unsqueeze(0).to(self.device)

    def get_next_action(self) -> PolicyAction:
        """
        Arg-max action for the internal state.

        Computation failures are logged and answered with
        OPTIMIZE_CONNECTIONS; only EncodingError (a malformed state) escapes.
        """
        state_vec = self._encode(self.processor_state)
        try:
            with torch.no_grad():
                probs = self.model(state_vec)[0]
                if self.config.action_mask is not None:
                    allowed = torch.tensor(
                        self.config.action_mask, dtype=torch.long, device=probs.device
                    )
                    masked = torch.full_like(probs, float("-inf"))
                    masked[allowed] = probs[allowed]
                    probs = masked
                action_idx = int(torch.argmax(probs).item())
            return PolicyAction(action_idx)
        except Exception as exc:
            logger.error("Policy inference failed, falling back to %s: %s",
                         POLICY_FALLBACK_ACTION.name, exc)
            return POLICY_FALLBACK_ACTION

    def critic_value(self, state: ChipState) -> float:
        """
        Scalar reading of the shared output: probability of the greedy
        action. Inspection only; training uses the full distributions.
        """
        with torch.no_grad():
            probs = self.model(self._encode(state))
        return float(probs.max().item())

    def train_with_ppo(
        self,
        state: ChipState,
        action: int,
        reward: float,
        next_state: ChipState,
    ) -> float:
        """
        One actor-critic step:

            advantage   = reward + γ·π(next_state) − π(state)
            actor_loss  = −mean(action · advantage)
            critic_loss = mean(advantage²)

        and a single Adam step on actor_loss + critic_loss.

        Any failure inside the step is logged and the step is skipped.

        Returns:
            The summed loss, or 0.0 if the step was skipped.
        """
        state_vec = self._encode(state)
        next_vec = self._encode(next_state)

        try:
            action_t = torch.tensor([float(int(action))], device=self.device)
            reward_t = torch.tensor(float(reward), device=self.device)

            critic = self.model(state_vec)
            next_critic = self.model(next_vec)
            advantage = reward_t + self.config.gamma * next_critic - critic

            actor_loss = -(action_t * advantage).mean()
            critic_loss = advantage.pow(2).mean()
            total_loss = actor_loss + critic_loss

            self.optimizer.zero_grad()
            total_loss.backward()
            self.optimizer.step()
        except Exception as exc:
            self.optimizer.zero_grad()
            logger.error("Policy training step skipped: %s", exc)
            return 0.0

        return float(total_loss.item())

    def calculate_reward(self, state: ChipState) -> float:
        return self.reward_model.reward(state)

    def save(self) -> None:
        """
        Raises:
            PersistenceError: if the weights cannot be written.
        """
        self.store.save(POLICY_MODEL_SLOT, self.model.state_dict())

    def load(self) -> bool:
        """Restore saved weights; a missing or corrupt slot leaves the model as is."""
        fresh = PolicyNetwork(self.network_config).to(self.device)
        return restore_into(self.store, POLICY_MODEL_SLOT, self.model, fresh)
