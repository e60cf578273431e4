# scripts/plot_results.py
from __future__ import annotations

import argparse
import csv
import os
import statistics
from typing import Dict, List

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt


def load_eval_csv(csv_path: str) -> Dict[str, List[Dict[str, float]]]:
    """
    Load agent_eval.csv and group rows by agent_type ('value', 'policy').
    """
    groups: Dict[str, List[Dict[str, float]]] = {"value": [], "policy": []}

    with open(csv_path, "r", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            atype = row["agent_type"]
            if atype not in groups:
                groups[atype] = []
            groups[atype].append(
                {
                    "seed": float(row["seed"]),
                    "final_reward": float(row["final_reward"]),
                    "mean_reward": float(row["mean_reward"]),
                    "best_reward": float(row["best_reward"]),
                    "num_components": float(row["num_components"]),
                    "fraction_optimize": float(row["fraction_optimize"]),
                }
            )
    return groups


def plot_agent_results(groups: Dict[str, List[Dict[str, float]]], out_dir: str) -> None:
    os.makedirs(out_dir, exist_ok=True)

    value = groups.get("value", [])
    policy = groups.get("policy", [])

    if not value or not policy:
        print("[WARN] Missing value or policy rows in agent_eval.csv; skipping plots.")
        return

    value_seeds = [g["seed"] for g in value]
    policy_seeds = [g["seed"] for g in policy]

    # Final reward per seed
    plt.figure()
    plt.plot(value_seeds, [g["final_reward"] for g in value], marker="o", label="ValueAgent")
    plt.plot(policy_seeds, [g["final_reward"] for g in policy], marker="x", label="PolicyAgent")
    plt.xlabel("Seed")
    plt.ylabel("Final reward")
    plt.title("Final design reward per seed")
    plt.legend()
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "final_reward_per_seed.png"))
    plt.close()

    # Design size per seed
    plt.figure()
    plt.plot(value_seeds, [g["num_components"] for g in value], marker="o", label="ValueAgent")
    plt.plot(policy_seeds, [g["num_components"] for g in policy], marker="x", label="PolicyAgent")
    plt.xlabel("Seed")
    plt.ylabel("Components")
    plt.title("Final component count per seed")
    plt.legend()
    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, "components_per_seed.png"))
    plt.close()

    value_mean = statistics.mean(g["mean_reward"] for g in value)
    policy_mean = statistics.mean(g["mean_reward"] for g in policy)
    value_opt = statistics.mean(g["fraction_optimize"] for g in value)
    policy_opt = statistics.mean(g["fraction_optimize"] for g in policy)

    print("\n[Agent diagnostic]")
    print(f"  Mean reward (value)    = {value_mean:.4f}")
    print(f"  Mean reward (policy)   = {policy_mean:.4f}")
    print(f"  OptimizeConn (value)   = {value_opt * 100:.1f}%")
    print(f"  OptimizeConn (policy)  = {policy_opt * 100:.1f}%")

    # A greedy agent with no exploration tends to lock onto one action.
    for label, frac in (("value", value_opt), ("policy", policy_opt)):
        if frac in (0.0, 1.0):
            print(
                f"  [WARN] {label} agent picked a single action class for every step; "
                "without exploration it may never see the alternatives."
            )
    if abs(value_mean - policy_mean) < 1e-3:
        print("  [INFO] Agents are indistinguishable on mean reward.")
    else:
        better = "value" if value_mean > policy_mean else "policy"
        print(f"  [OK] {better} agent reaches the higher mean reward.")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Plot and diagnose agent evaluation results from CSV."
    )
    parser.add_argument(
        "--eval-csv",
        type=str,
        default="results/agent_eval.csv",
        help="Path to agent_eval.csv produced by eval_agents.py",
    )
    parser.add_argument(
        "--out-dir",
        type=str,
        default="figures",
        help="Directory to save generated plots.",
    )
    args = parser.parse_args()

    if os.path.exists(args.eval_csv):
        groups = load_eval_csv(args.eval_csv)
        plot_agent_results(groups, args.out_dir)
    else:
        print(f"[INFO] Evaluation CSV not found at {args.eval_csv}; nothing to plot.")


if __name__ == "__main__":
    main()
