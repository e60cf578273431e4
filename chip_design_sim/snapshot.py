from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
import json
import logging
import math
import time

import numpy as np

from .errors import SnapshotLoadError

logger = logging.getLogger(__name__)

PATTERN_SIZE = 1024

_REQUIRED_SECTIONS = {
    "quantum_state": ("wavefunction", "coherence", "entanglement"),
    "photonic": ("interference", "hologram"),
    "metrics": ("efficiency", "processing_power"),
}


def _check_pattern_sizes(interference: Tuple[float, ...], hologram: Tuple[float, ...]) -> None:
    for name, values in (("interference", interference), ("hologram", hologram)):
        if len(values) != PATTERN_SIZE:
            raise SnapshotLoadError(
                f"photonic.{name} must hold {PATTERN_SIZE} samples, got {len(values)}"
            )


@dataclass(frozen=True)
class ProcessorState:
    """
    Plain, JSON-representable snapshot of a HolographicProcessor.
    """
    wavefunction: Tuple[Tuple[float, float], ...]
    coherence: float
    entanglement: float
    interference: Tuple[float, ...]
    hologram: Tuple[float, ...]
    efficiency: float
    processing_power: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quantum_state": {
                "wavefunction": [{"real": re, "imag": im} for re, im in self.wavefunction],
                "coherence": self.coherence,
                "entanglement": self.entanglement,
            },
            "photonic": {
                "interference": list(self.interference),
                "hologram": list(self.hologram),
            },
            "metrics": {
                "efficiency": self.efficiency,
                "processing_power": self.processing_power,
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "ProcessorState":
        """
        Validate and parse a snapshot dictionary.

        Every required field is checked before anything is built, so a
        malformed snapshot never yields a partial ProcessorState.

        Raises:
            SnapshotLoadError: on any missing or malformed field.
        """
        if not isinstance(data, Mapping):
            raise SnapshotLoadError("Snapshot must be a JSON object")
        for section, keys in _REQUIRED_SECTIONS.items():
            body = data.get(section)
            if not isinstance(body, Mapping):
                raise SnapshotLoadError(f"Snapshot is missing section {section!r}")
            for key in keys:
                if key not in body:
                    raise SnapshotLoadError(f"Snapshot is missing field {section}.{key}")

        qs, ph, mt = data["quantum_state"], data["photonic"], data["metrics"]
        try:
            wavefunction = tuple(
                (float(w["real"]), float(w["imag"])) for w in qs["wavefunction"]
            )
            interference = tuple(float(v) for v in ph["interference"])
            hologram = tuple(float(v) for v in ph["hologram"])
            _check_pattern_sizes(interference, hologram)
            return cls(
                wavefunction=wavefunction,
                coherence=float(qs["coherence"]),
                entanglement=float(qs["entanglement"]),
                interference=interference,
                hologram=hologram,
                efficiency=float(mt["efficiency"]),
                processing_power=float(mt["processing_power"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotLoadError(f"Malformed snapshot: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> "ProcessorState":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotLoadError(f"Snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


@dataclass
class HolographicProcessor:
    """
    Holds the wavefunction / interference / hologram state that feeds the
    optimizer's auxiliary scalars (coherence, entanglement, fidelity).

    The quantities are bookkeeping only; no optics are simulated.
    """
    wavefunction: List[complex] = field(default_factory=lambda: [complex(1.0, 0.0)])
    interference: np.ndarray = field(
        default_factory=lambda: np.zeros(PATTERN_SIZE, dtype=np.float32)
    )
    hologram: np.ndarray = field(
        default_factory=lambda: np.zeros(PATTERN_SIZE, dtype=np.float32)
    )
    hologram_fidelity: float = 0.9
    processing_power: float = 1.0

    def coherence_length(self) -> float:
        """Mean magnitude of the wavefunction amplitudes."""
        if not self.wavefunction:
            return 0.0
        return sum(abs(a) for a in self.wavefunction) / len(self.wavefunction)

    def entanglement_degree(self) -> float:
        """Mean pairwise |psi_i * conj(psi_j)| over distinct amplitude pairs."""
        n = len(self.wavefunction)
        if n < 2:
            return 0.0
        total = 0.0
        for i in range(n):
            for j in range(i + 1, n):
                total += abs(self.wavefunction[i] * self.wavefunction[j].conjugate())
        return total / (n * (n - 1) / 2)

    def set_wavefunction(self, amplitudes: List[complex], normalize: bool = True) -> None:
        amplitudes = list(amplitudes)
        if normalize:
            norm = math.sqrt(sum(abs(a) ** 2 for a in amplitudes))
            if norm > 0.0:
                amplitudes = [a / norm for a in amplitudes]
        self.wavefunction = amplitudes

    def propagate_photons(self, delta_time: float, now: Optional[float] = None) -> None:
        """Refresh the interference pattern with a damped phase sweep."""
        t = time.time() if now is None else now
        idx = np.arange(PATTERN_SIZE, dtype=np.float64)
        phase = np.mod(t * 0.001 + idx * 0.1, 2.0 * math.pi)
        self.interference = (np.cos(phase) * math.exp(-delta_time)).astype(np.float32)

    def record_hologram(self, data: np.ndarray) -> None:
        """Average new data into the hologram plate (zero-padded / truncated)."""
        incoming = np.zeros(PATTERN_SIZE, dtype=np.float32)
        values = np.asarray(data, dtype=np.float32).ravel()[:PATTERN_SIZE]
        incoming[: values.size] = values
        self.hologram = ((self.hologram + incoming) * 0.5).astype(np.float32)

    def photon_metrics(self) -> Dict[str, float]:
        pattern = self.interference.astype(np.float64)
        if pattern.size > 1:
            coherence = float(np.mean(np.abs(pattern[1:] * pattern[:-1])))
        else:
            coherence = 0.0
        return {
            "hologram_fidelity": float(np.mean(np.abs(self.hologram))),
            "coherence_length": coherence,
            "interference_strength": float(np.max(pattern)) if pattern.size else 0.0,
        }

    def save_state(self) -> ProcessorState:
        return ProcessorState(
            wavefunction=tuple((a.real, a.imag) for a in self.wavefunction),
            coherence=self.coherence_length(),
            entanglement=self.entanglement_degree(),
            interference=tuple(float(v) for v in self.interference),
            hologram=tuple(float(v) for v in self.hologram),
            efficiency=self.hologram_fidelity,
            processing_power=self.processing_power,
        )

    def load_state(self, state: Any) -> None:
        """
        Restore from a ProcessorState or its dict form.

        Validation happens before any field is assigned; on error the
        processor is left exactly as it was.

        Raises:
            SnapshotLoadError: on a missing or malformed field.
        """
        if not isinstance(state, ProcessorState):
            state = ProcessorState.from_dict(state)
        _check_pattern_sizes(state.interference, state.hologram)
        if state.processing_power <= 0.0:
            raise SnapshotLoadError("processing_power must be positive")

        wavefunction = [complex(re, im) for re, im in state.wavefunction]
        interference = np.asarray(state.interference, dtype=np.float32)
        hologram = np.asarray(state.hologram, dtype=np.float32)

        self.wavefunction = wavefunction
        self.interference = interference
        self.hologram = hologram
        self.hologram_fidelity = state.efficiency
        self.processing_power = state.processing_power
        logger.debug(
            "Loaded processor snapshot: %d amplitudes, %d-sample patterns",
            len(wavefunction),
            interference.size,
        )
