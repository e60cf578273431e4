from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chip_design_sim import ChipAction, ChipState, PolicyAction
from .policy_agent import PolicyAgent, PolicyAgentConfig
from .storage import ModelStore
from .value_agent import ValueAgent, ValueAgentConfig


@dataclass
class ValueAgentAdapter:
    """
    Makes a ValueAgent look like the loop's agent protocol:
    select_action(state) and learn(state, action, reward, next_state).
    """
    agent: ValueAgent

    def select_action(self, state: ChipState) -> ChipAction:
        return self.agent.get_next_action(state)

    def learn(
        self,
        state: ChipState,
        action: ChipAction,
        reward: float,
        next_state: ChipState,
    ) -> float:
        return self.agent.train(state, action, reward, next_state)


@dataclass
class PolicyAgentAdapter:
    """
    Adapter for the PolicyAgent, which acts on an internal state: the
    adapter keeps that state in step with the loop's current design.

    Reserved policy actions come back as PolicyAction members; the loop
    rejects them with UnknownAction.
    """
    agent: PolicyAgent

    def select_action(self, state: ChipState) -> PolicyAction:
        self.agent.observe(state)
        return self.agent.get_next_action()

    def learn(
        self,
        state: ChipState,
        action: ChipAction,
        reward: float,
        next_state: ChipState,
    ) -> float:
        loss = self.agent.train_with_ppo(state, int(action), reward, next_state)
        self.agent.observe(next_state)
        return loss


# Indices of the policy actions that have a transition handler.
KNOWN_POLICY_ACTIONS = tuple(int(a) for a in ChipAction)


def build_default_value_agent(
    checkpoint_dir: Optional[Path] = None,
    load_weights: bool = False,
) -> ValueAgentAdapter:
    """
    Convenience builder: a fresh ValueAgent, optionally restored from its
    slot, wrapped for the optimization loop.
    """
    store = ModelStore(root=checkpoint_dir) if checkpoint_dir is not None else None
    agent = ValueAgent(config=ValueAgentConfig(), store=store)
    if load_weights:
        agent.load()
    return ValueAgentAdapter(agent=agent)


def build_default_policy_agent(
    initial_state: Optional[ChipState] = None,
    checkpoint_dir: Optional[Path] = None,
    load_weights: bool = False,
    restrict_to_known: bool = True,
) -> PolicyAgentAdapter:
    """
    Convenience builder for the PolicyAgent. With restrict_to_known the
    arg-max only considers actions the transition function can apply.
    """
    store = ModelStore(root=checkpoint_dir) if checkpoint_dir is not None else None
    config = PolicyAgentConfig(
        action_mask=KNOWN_POLICY_ACTIONS if restrict_to_known else None
    )
    agent = PolicyAgent(initial_state=initial_state, config=config, store=store)
    if load_weights:
        agent.load()
    return PolicyAgentAdapter(agent=agent)
