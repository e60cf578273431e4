from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RewardWeights:
    """
    Weights of the composite design score.

    The four performance metrics are divided by 100 before weighting; the
    quality bonus uses the mean of coherence, entanglement and fidelity.
    """

    POWER: float = 0.3
    AREA: float = 0.2
    THERMAL: float = 0.2  # applied to (1 - thermal)
    SIGNAL: float = 0.3
    QUALITY_BONUS: float = 0.1


@dataclass(frozen=True)
class TransitionConfig:
    """
    Constants used by the action transition function.

    Units: positions in arbitrary layout units, temperature in degrees C,
    efficiency and metrics in percent.
    """

    # Placement of newly added components.
    PLACEMENT_EXTENT: float = 10.0
    EFFICIENCY_MIN: float = 75.0
    EFFICIENCY_MAX: float = 100.0
    TEMPERATURE_MIN: float = 20.0
    TEMPERATURE_MAX: float = 50.0

    # OptimizeConnections increments (percentage points).
    SIGNAL_STEP: float = 5.0
    POWER_STEP: float = 3.0

    # Per-step measurement jitter.
    METRIC_DRIFT_MAX: float = 2.0
    THERMAL_DRIFT_MAX: float = 1.0
    TEMPERATURE_NOISE_STD: float = 0.5
    LOAD_NOISE_STD: float = 0.02


@dataclass(frozen=True)
class LoopConfig:
    """Pacing and bookkeeping for the optimize-observe-train loop."""

    # Minimum delay between iterations, in seconds.
    STEP_INTERVAL_S: float = 0.1
    # Number of IterationResults kept for inspection.
    HISTORY_LIMIT: int = 100


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Top-level configuration bundle for the chip optimizer.
    """

    reward: RewardWeights = field(default_factory=RewardWeights)
    transition: TransitionConfig = field(default_factory=TransitionConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
