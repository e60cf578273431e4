from .config import LoopConfig, OptimizerConfig, RewardWeights, TransitionConfig
from .entities import (
    ChipAction,
    ChipState,
    Component,
    ComponentType,
    Connection,
    PerformanceMetrics,
    PolicyAction,
    Transition,
    Vec3,
)
from .errors import (
    ChipOptimizerError,
    EncodingError,
    InferenceError,
    PersistenceError,
    SnapshotLoadError,
    TrainingError,
    UnknownAction,
)
from .loop import FALLBACK_ACTION, IterationResult, LoopStatus, OptimizationLoop
from .reward import RewardModel
from .snapshot import HolographicProcessor, ProcessorState
from .transitions import ChipTransitionModel, resolve_action

__all__ = [
    "LoopConfig",
    "OptimizerConfig",
    "RewardWeights",
    "TransitionConfig",
    "ChipAction",
    "ChipState",
    "Component",
    "ComponentType",
    "Connection",
    "PerformanceMetrics",
    "PolicyAction",
    "Transition",
    "Vec3",
    "ChipOptimizerError",
    "EncodingError",
    "InferenceError",
    "PersistenceError",
    "SnapshotLoadError",
    "TrainingError",
    "UnknownAction",
    "FALLBACK_ACTION",
    "IterationResult",
    "LoopStatus",
    "OptimizationLoop",
    "RewardModel",
    "HolographicProcessor",
    "ProcessorState",
    "ChipTransitionModel",
    "resolve_action",
]
