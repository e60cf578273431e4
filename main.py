from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path

from chip_design_sim import (
    ChipState,
    ChipTransitionModel,
    LoopConfig,
    OptimizationLoop,
    RewardModel,
)
from chip_agent import build_default_policy_agent, build_default_value_agent

CHECKPOINT_DIR = Path("checkpoints")
NUM_ITERATIONS = 200


def print_summary(label: str, loop: OptimizationLoop, reward_model: RewardModel) -> None:
    state = loop.state
    perf = state.performance
    actions = [r.action.name for r in loop.history]
    counts = {name: actions.count(name) for name in sorted(set(actions))}
    print(f"\n[{label}]")
    print(f"  Iterations:        {loop.iterations}")
    print(f"  Final reward:      {reward_model.reward(state):.4f}")
    print(f"  Components:        {len(state.components)}")
    print(f"  Connections:       {len(state.connections)}")
    print(f"  Power / Signal:    {perf.power_efficiency:.1f}% / {perf.signal_integrity:.1f}%")
    print(f"  Area / Thermal:    {perf.area_utilization:.1f}% / {perf.thermal_dissipation:.1f}%")
    print(f"  Action counts:     {counts}")


async def run_agent(label: str, adapter, initial_state: ChipState) -> OptimizationLoop:
    reward_model = RewardModel()
    loop = OptimizationLoop(
        agent=adapter,
        initial_state=initial_state,
        apply_action=ChipTransitionModel(),
        reward_model=reward_model,
        config=LoopConfig(STEP_INTERVAL_S=0.0),
    )
    await loop.run(max_iterations=NUM_ITERATIONS)
    print_summary(label, loop, reward_model)
    return loop


async def main() -> None:
    logging.basicConfig(
        level=os.environ.get("CHIP_OPT_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    initial_state = ChipState.default()
    print(f"[Initial] Reward: {RewardModel().reward(initial_state):.4f}")

    # -------------------------------
    # 1) Value-based agent (DQN)
    # -------------------------------
    value_adapter = build_default_value_agent(
        checkpoint_dir=CHECKPOINT_DIR,
        load_weights=True,
    )
    value_loop = await run_agent("ValueAgent", value_adapter, initial_state)
    value_adapter.agent.save()

    # -------------------------------
    # 2) Actor-critic agent
    # -------------------------------
    policy_adapter = build_default_policy_agent(
        initial_state=initial_state,
        checkpoint_dir=CHECKPOINT_DIR,
        load_weights=True,
    )
    await run_agent("PolicyAgent", policy_adapter, initial_state)
    policy_adapter.agent.save()

    design_path = CHECKPOINT_DIR / "value_agent_design.json"
    design_path.write_text(json.dumps(value_loop.state.to_dict(), indent=2))
    print(f"\n[INFO] Wrote final design to {design_path}")


if __name__ == "__main__":
    asyncio.run(main())
