from __future__ import annotations

from dataclasses import dataclass, field

from .config import RewardWeights
from .entities import ChipState


@dataclass(frozen=True)
class RewardModel:
    """
    Composite desirability score of a chip design.

    reward = w_p * power + w_a * area + w_t * (1 - thermal) + w_s * signal
             + w_q * mean(coherence, entanglement, fidelity)

    with the four performance metrics divided by 100. The result is not
    normalized; typical values fall in [0, ~1.2].
    """
    weights: RewardWeights = field(default_factory=RewardWeights)

    def reward(self, state: ChipState) -> float:
        perf = state.performance
        power = perf.power_efficiency / 100.0
        area = perf.area_utilization / 100.0
        thermal = 1.0 - perf.thermal_dissipation / 100.0
        signal = perf.signal_integrity / 100.0

        quality = (
            state.quantum_coherence
            + state.entanglement_degree
            + state.holographic_fidelity
        ) / 3.0

        w = self.weights
        return (
            w.POWER * power
            + w.AREA * area
            + w.THERMAL * thermal
            + w.SIGNAL * signal
            + w.QUALITY_BONUS * quality
        )

    def improvement(self, before: ChipState, after: ChipState) -> float:
        """Reward delta of a transition (positive when the design got better)."""
        return self.reward(after) - self.reward(before)
