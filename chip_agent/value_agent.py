from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging
import random

import torch
import torch.nn.functional as F

from chip_design_sim.entities import ChipAction, ChipState, Transition
from chip_design_sim.errors import InferenceError, TrainingError
from chip_design_sim.transitions import resolve_action
from .codec import VALUE_CODEC, StateCodec
from .model import ValueNetwork, ValueNetworkConfig
from .replay import ExperienceBuffer
from .storage import ModelStore, restore_into

logger = logging.getLogger(__name__)

VALUE_MODEL_SLOT = "chip-design-agent"


@dataclass
class ValueAgentConfig:
    batch_size: int = 32
    gamma: float = 0.99
    learning_rate: float = 1e-3
    buffer_capacity: int = 10_000
    device: str = "cpu"


class ValueAgent:
    """
    DQN-style agent: a Q-network over the 10-feature encoding, trained from
    an experience buffer with a bootstrapped TD target.

    Action selection is purely greedy (arg-max Q); there is no exploration
    noise.
    """

    def __init__(
        self,
        config: Optional[ValueAgentConfig] = None,
        network_config: Optional[ValueNetworkConfig] = None,
        store: Optional[ModelStore] = None,
        codec: StateCodec = VALUE_CODEC,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or ValueAgentConfig()
        self.network_config = network_config or ValueNetworkConfig()
        self.codec = codec
        self.device = torch.device(self.config.device)
        self.store = store or ModelStore(device=self.device)

        self.model = ValueNetwork(self.network_config).to(self.device)
        self.optimizer = torch.optim.Adam(
            self.model.parameters(), lr=self.config.learning_rate
        )
        self.memory = ExperienceBuffer(
            capacity=self.config.buffer_capacity,
            rng=rng or random.Random(),
        )

    def get_next_action(self, state: ChipState) -> ChipAction:
        """
        Greedy action for `state`.

        Raises:
            EncodingError: if the state cannot be vectorized.
            InferenceError: if the forward pass fails.
        """
        state_vec = self.codec.encode(state).unsqueeze(0).to(self.device)
        try:
            with torch.no_grad():
                q_values = self.model(state_vec)
                action_idx = int(torch.argmax(q_values, dim=-1).item())
        except RuntimeError as exc:
            raise InferenceError(f"Q-network forward pass failed: {exc}") from exc
        return resolve_action(action_idx)

    def train(
        self,
        state: ChipState,
        action: int,
        reward: float,
        next_state: ChipState,
    ) -> float:
        """
        Record the transition, then take one TD step on a replayed batch.

        Returns:
            MSE loss of the step, or 0.0 while the buffer holds fewer than
            batch_size transitions.

        Raises:
            EncodingError: if a stored state cannot be vectorized.
            TrainingError: if the gradient step fails.
        """
        self.memory.add(
            Transition(state=state, action=int(action), reward=float(reward), next_state=next_state)
        )
        if self.memory.size() < self.config.batch_size:
            return 0.0

        batch = self.memory.sample(self.config.batch_size)
        states = self.codec.encode_batch([t.state for t in batch]).to(self.device)
        next_states = self.codec.encode_batch([t.next_state for t in batch]).to(self.device)
        actions = torch.tensor([t.action for t in batch], dtype=torch.long, device=self.device)
        rewards = torch.tensor([t.reward for t in batch], dtype=torch.float32, device=self.device)

        try:
            with torch.no_grad():
                max_next_q = self.model(next_states).max(dim=-1).values

            q_values = self.model(states)
            # Only the taken action's slot moves toward r + γ·max Q(s', ·).
            target = q_values.detach().clone()
            rows = torch.arange(len(batch), device=self.device)
            target[rows, actions] = rewards + self.config.gamma * max_next_q

            loss = F.mse_loss(q_values, target)
            self.optimizer.zero_grad()
            loss.backward()
            self.optimizer.step()
        except (RuntimeError, IndexError) as exc:
            self.optimizer.zero_grad()
            raise TrainingError(f"Q-network update failed: {exc}") from exc

        loss_value = float(loss.item())
        logger.debug("TD step on %d samples: loss=%.5f", len(batch), loss_value)
        return loss_value

    def save(self) -> None:
        """
        Raises:
            PersistenceError: if the weights cannot be written.
        """
        self.store.save(VALUE_MODEL_SLOT, self.model.state_dict())

    def load(self) -> bool:
        """Restore saved weights; a missing or corrupt slot leaves the model as is."""
        fresh = ValueNetwork(self.network_config).to(self.device)
        return restore_into(self.store, VALUE_MODEL_SLOT, self.model, fresh)
