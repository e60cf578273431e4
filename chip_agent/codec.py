from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence
import math

import torch
from torch import Tensor

from chip_design_sim.entities import ChipState
from chip_design_sim.errors import EncodingError

VALUE_STATE_DIM = 10
POLICY_STATE_DIM = 30

# Layout window of the wide encoding.
MAX_ENCODED_COMPONENTS = 5
MAX_ENCODED_CONNECTIONS = 5

_COMPONENT_COUNT_SCALE = 1000.0

_BASE_FEATURES = (
    "component_count",
    "power_efficiency",
    "area_utilization",
    "thermal_dissipation",
    "signal_integrity",
    "quantum_coherence",
    "processing_power",
    "network_efficiency",
    "entanglement_degree",
    "holographic_fidelity",
)
_COMPONENT_FEATURES = ("x", "y", "z", "efficiency", "temperature")


@dataclass(frozen=True)
class StateCodec:
    """
    Fixed-width ChipState -> feature vector mapping.

    Feature order:
      [component_count / 1000,
       power, area, thermal, signal (each / 100),
       coherence, processing_power, network_efficiency, entanglement, fidelity,
       (layout only) first 5 components' (x, y, z, efficiency, temperature),
       (layout only) first 5 connections' weights]

    Shorter vectors are zero-padded and longer ones truncated at `width`, so
    identical states always encode to bit-identical tensors.
    """
    width: int
    include_layout: bool = False

    def features(self, state: ChipState) -> List[float]:
        """Unpadded feature list in encoding order."""
        try:
            perf = state.performance
            values: List[float] = [
                len(state.components) / _COMPONENT_COUNT_SCALE,
                perf.power_efficiency / 100.0,
                perf.area_utilization / 100.0,
                perf.thermal_dissipation / 100.0,
                perf.signal_integrity / 100.0,
                state.quantum_coherence,
                state.processing_power,
                state.network_efficiency,
                state.entanglement_degree,
                state.holographic_fidelity,
            ]
            if self.include_layout:
                for comp in state.components[:MAX_ENCODED_COMPONENTS]:
                    values.extend(
                        [
                            comp.position.x,
                            comp.position.y,
                            comp.position.z,
                            comp.efficiency,
                            comp.temperature,
                        ]
                    )
                for link in state.connections[:MAX_ENCODED_CONNECTIONS]:
                    values.append(state.effective_weight(link))
            values = [float(v) for v in values]
        except (AttributeError, TypeError, ValueError) as exc:
            raise EncodingError(f"Cannot encode chip state: {exc}") from exc

        for name, value in zip(self.feature_names(len(values)), values):
            if not math.isfinite(value):
                raise EncodingError(f"Non-finite feature {name}={value}")
        return values

    def encode(self, state: ChipState) -> Tensor:
        """
        Returns:
            float32 Tensor of shape [width].
        """
        values = self.features(state)[: self.width]
        vec = torch.zeros(self.width, dtype=torch.float32)
        if values:
            vec[: len(values)] = torch.tensor(values, dtype=torch.float32)
        return vec

    def encode_batch(self, states: Sequence[ChipState]) -> Tensor:
        """Stack encodings into a [batch, width] tensor."""
        if not states:
            return torch.zeros((0, self.width), dtype=torch.float32)
        return torch.stack([self.encode(s) for s in states])

    def feature_names(self, count: int | None = None) -> List[str]:
        """Names of the first `count` features (defaults to `width`)."""
        count = self.width if count is None else count
        names: List[str] = list(_BASE_FEATURES)
        if self.include_layout:
            for i in range(MAX_ENCODED_COMPONENTS):
                names.extend(f"component{i}.{f}" for f in _COMPONENT_FEATURES)
            names.extend(f"connection{i}.weight" for i in range(MAX_ENCODED_CONNECTIONS))
        while len(names) < count:
            names.append(f"pad{len(names)}")
        return names[:count]

    def describe(self, vector: Tensor) -> Dict[str, float]:
        """Map an encoded vector back to named features."""
        flat = vector.detach().reshape(-1).tolist()
        if len(flat) != self.width:
            raise EncodingError(f"Expected a vector of width {self.width}, got {len(flat)}")
        return dict(zip(self.feature_names(), flat))


VALUE_CODEC = StateCodec(width=VALUE_STATE_DIM)
POLICY_CODEC = StateCodec(width=POLICY_STATE_DIM, include_layout=True)
