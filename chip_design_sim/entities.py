from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Tuple
import math

from .errors import EncodingError, UnknownAction


class ComponentType(Enum):
    """Category tag of a placed component."""
    PROCESSOR = "processor"
    MEMORY = "memory"
    QUANTUM = "quantum"
    OPTICAL = "optical"


class ChipAction(IntEnum):
    """Structural edits understood by the transition function."""
    ADD_PROCESSOR = 0
    ADD_MEMORY = 1
    OPTIMIZE_CONNECTIONS = 2
    REMOVE_COMPONENT = 3


class PolicyAction(IntEnum):
    """
    Wider action space of the actor-critic policy.

    The first four members share indices with ChipAction; the rest are
    placeholders with no transition handler.
    """
    ADD_PROCESSOR = 0
    ADD_MEMORY = 1
    OPTIMIZE_CONNECTIONS = 2
    REMOVE_COMPONENT = 3
    RESERVED_4 = 4
    RESERVED_5 = 5
    RESERVED_6 = 6
    RESERVED_7 = 7

    def to_chip_action(self) -> ChipAction:
        try:
            return ChipAction(int(self))
        except ValueError as exc:
            raise UnknownAction(self) from exc


@dataclass(frozen=True)
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def distance_to(self, other: "Vec3") -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )


@dataclass(frozen=True)
class Component:
    """
    A placed block on the chip (processor, memory, ...).
    """
    id: str
    position: Vec3
    type: ComponentType
    connections: Tuple[str, ...] = ()
    efficiency: float = 100.0  # percent
    temperature: float = 20.0
    load: float = 0.0  # fraction in [0, 1]


@dataclass(frozen=True)
class Connection:
    """
    Weighted interconnect between two components.
    """
    id: str
    source: str
    dest: str
    weight: float = 1.0


@dataclass(frozen=True)
class PerformanceMetrics:
    """Four percentages describing the current design quality."""
    power_efficiency: float
    area_utilization: float
    thermal_dissipation: float
    signal_integrity: float

    def clamped(self) -> "PerformanceMetrics":
        return PerformanceMetrics(
            power_efficiency=_clamp(self.power_efficiency, 0.0, 100.0),
            area_utilization=_clamp(self.area_utilization, 0.0, 100.0),
            thermal_dissipation=_clamp(self.thermal_dissipation, 0.0, 100.0),
            signal_integrity=_clamp(self.signal_integrity, 0.0, 100.0),
        )


@dataclass(frozen=True)
class ChipState:
    """
    Immutable snapshot of a design: components, interconnect, metrics and
    the auxiliary quality scalars.
    """
    components: Tuple[Component, ...] = ()
    connections: Tuple[Connection, ...] = ()
    performance: PerformanceMetrics = field(
        default_factory=lambda: PerformanceMetrics(75.0, 80.0, 20.0, 90.0)
    )
    quantum_coherence: float = 0.8
    processing_power: float = 1.0
    network_efficiency: float = 0.85
    entanglement_degree: float = 0.75
    holographic_fidelity: float = 0.9

    @classmethod
    def default(cls) -> "ChipState":
        return cls()

    def component(self, component_id: str) -> Optional[Component]:
        for comp in self.components:
            if comp.id == component_id:
                return comp
        return None

    def effective_weight(self, connection: Connection) -> float:
        """Connection weight, or 0.0 when either endpoint is not a live component."""
        live = {c.id for c in self.components}
        if connection.source in live and connection.dest in live:
            return connection.weight
        return 0.0

    def evolve(self, **changes: Any) -> "ChipState":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [
                {
                    "id": c.id,
                    "position": [c.position.x, c.position.y, c.position.z],
                    "type": c.type.value,
                    "connections": list(c.connections),
                    "efficiency": c.efficiency,
                    "temperature": c.temperature,
                    "load": c.load,
                }
                for c in self.components
            ],
            "connections": [
                {"id": k.id, "source": k.source, "dest": k.dest, "weight": k.weight}
                for k in self.connections
            ],
            "performance": {
                "power_efficiency": self.performance.power_efficiency,
                "area_utilization": self.performance.area_utilization,
                "thermal_dissipation": self.performance.thermal_dissipation,
                "signal_integrity": self.performance.signal_integrity,
            },
            "quantum_coherence": self.quantum_coherence,
            "processing_power": self.processing_power,
            "network_efficiency": self.network_efficiency,
            "entanglement_degree": self.entanglement_degree,
            "holographic_fidelity": self.holographic_fidelity,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChipState":
        try:
            components = tuple(
                Component(
                    id=str(c["id"]),
                    position=_position(c["position"]),
                    type=ComponentType(c["type"]),
                    connections=tuple(str(n) for n in c.get("connections", ())),
                    efficiency=float(c["efficiency"]),
                    temperature=float(c["temperature"]),
                    load=float(c["load"]),
                )
                for c in data["components"]
            )
            connections = tuple(
                Connection(
                    id=str(k["id"]),
                    source=str(k["source"]),
                    dest=str(k["dest"]),
                    weight=float(k["weight"]),
                )
                for k in data["connections"]
            )
            perf = data["performance"]
            performance = PerformanceMetrics(
                power_efficiency=float(perf["power_efficiency"]),
                area_utilization=float(perf["area_utilization"]),
                thermal_dissipation=float(perf["thermal_dissipation"]),
                signal_integrity=float(perf["signal_integrity"]),
            )
            return cls(
                components=components,
                connections=connections,
                performance=performance,
                quantum_coherence=float(data["quantum_coherence"]),
                processing_power=float(data["processing_power"]),
                network_efficiency=float(data["network_efficiency"]),
                entanglement_degree=float(data["entanglement_degree"]),
                holographic_fidelity=float(data["holographic_fidelity"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise EncodingError(f"Malformed chip state: {exc}") from exc


@dataclass(frozen=True)
class Transition:
    """One (state, action, reward, next_state) record for experience replay."""
    state: ChipState
    action: int
    reward: float
    next_state: ChipState


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _position(values: Any) -> Vec3:
    coords = [float(v) for v in values]
    if len(coords) != 3:
        raise EncodingError(f"position needs 3 coordinates, got {len(coords)}")
    return Vec3(*coords)
