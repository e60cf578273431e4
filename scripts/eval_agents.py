# scripts/eval_agents.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

import argparse
import asyncio
import csv
import logging
import os
import random
import statistics

import torch

from chip_design_sim import (
    ChipState,
    ChipTransitionModel,
    LoopConfig,
    OptimizationLoop,
    RewardModel,
)
from chip_agent import build_default_policy_agent, build_default_value_agent


@dataclass
class RunMetrics:
    final_reward: float
    mean_reward: float
    best_reward: float
    num_components: int
    mean_loss: float
    fraction_optimize: float


def compute_metrics(loop: OptimizationLoop, reward_model: RewardModel) -> RunMetrics:
    history = list(loop.history)
    if not history:
        reward = reward_model.reward(loop.state)
        return RunMetrics(reward, reward, reward, len(loop.state.components), 0.0, 0.0)

    rewards = [r.reward for r in history]
    losses = [r.loss for r in history]
    optimize = sum(1 for r in history if r.action.name == "OPTIMIZE_CONNECTIONS")
    return RunMetrics(
        final_reward=rewards[-1],
        mean_reward=statistics.mean(rewards),
        best_reward=max(rewards),
        num_components=len(loop.state.components),
        mean_loss=statistics.mean(losses),
        fraction_optimize=optimize / len(history),
    )


def run_single(
    make_agent: Callable[[ChipState], object],
    seed: int,
    num_iterations: int,
) -> RunMetrics:
    random.seed(seed)
    torch.manual_seed(seed)

    initial_state = ChipState.default()
    reward_model = RewardModel()
    loop = OptimizationLoop(
        agent=make_agent(initial_state),
        initial_state=initial_state,
        apply_action=ChipTransitionModel(rng=random.Random(seed)),
        reward_model=reward_model,
        config=LoopConfig(STEP_INTERVAL_S=0.0, HISTORY_LIMIT=num_iterations),
    )
    asyncio.run(loop.run(max_iterations=num_iterations))
    return compute_metrics(loop, reward_model)


def make_value_agent(initial_state: ChipState) -> object:
    return build_default_value_agent()


def make_policy_agent(initial_state: ChipState) -> object:
    return build_default_policy_agent(initial_state=initial_state)


def summarize(label: str, metrics_list: List[RunMetrics]) -> None:
    def mean_std(xs: List[float]) -> tuple[float, float]:
        if not xs:
            return 0.0, 0.0
        if len(xs) == 1:
            return xs[0], 0.0
        return statistics.mean(xs), statistics.pstdev(xs)

    final_m, final_s = mean_std([m.final_reward for m in metrics_list])
    mean_m, mean_s = mean_std([m.mean_reward for m in metrics_list])
    comp_m, comp_s = mean_std([float(m.num_components) for m in metrics_list])
    opt_m, opt_s = mean_std([m.fraction_optimize for m in metrics_list])

    print(f"\n[{label}]")
    print(f"  Final reward:       {final_m:.4f} ± {final_s:.4f}")
    print(f"  Mean reward:        {mean_m:.4f} ± {mean_s:.4f}")
    print(f"  Components:         {comp_m:.1f} ± {comp_s:.1f}")
    print(f"  OptimizeConn frac:  {opt_m * 100:.1f}% ± {opt_s * 100:.1f}%")


FIELDNAMES = [
    "agent_type",
    "seed",
    "num_iterations",
    "final_reward",
    "mean_reward",
    "best_reward",
    "num_components",
    "mean_loss",
    "fraction_optimize",
]


def write_csv(
    csv_path: str,
    num_iterations: int,
    results: Dict[str, List[RunMetrics]],
) -> None:
    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)

    with open(csv_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for agent_type, metrics_list in results.items():
            for seed, m in enumerate(metrics_list):
                writer.writerow(
                    {
                        "agent_type": agent_type,
                        "seed": seed,
                        "num_iterations": num_iterations,
                        "final_reward": m.final_reward,
                        "mean_reward": m.mean_reward,
                        "best_reward": m.best_reward,
                        "num_components": m.num_components,
                        "mean_loss": m.mean_loss,
                        "fraction_optimize": m.fraction_optimize,
                    }
                )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Evaluate the value-based and actor-critic chip optimizers."
    )
    parser.add_argument("--num-seeds", type=int, default=5)
    parser.add_argument("--num-iterations", type=int, default=300)
    parser.add_argument("--csv-path", type=str, default="results/agent_eval.csv")
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level)

    results: Dict[str, List[RunMetrics]] = {"value": [], "policy": []}

    for seed in range(args.num_seeds):
        print(f"Running seed {seed}...")
        results["value"].append(run_single(make_value_agent, seed, args.num_iterations))
        results["policy"].append(run_single(make_policy_agent, seed, args.num_iterations))

    summarize("ValueAgent (DQN, greedy)", results["value"])
    summarize("PolicyAgent (actor-critic)", results["policy"])

    write_csv(args.csv_path, args.num_iterations, results)
    print(f"\n[INFO] Wrote CSV to {args.csv_path}")


if __name__ == "__main__":
    main()
