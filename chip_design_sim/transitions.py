from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Set, Tuple, Union
import logging
import random
import uuid

from .config import TransitionConfig
from .entities import (
    ChipAction,
    ChipState,
    Component,
    ComponentType,
    Connection,
    PerformanceMetrics,
    PolicyAction,
    Vec3,
)
from .errors import UnknownAction

logger = logging.getLogger(__name__)

Handler = Callable[[ChipState, TransitionConfig, random.Random], ChipState]


def _new_component(
    kind: ComponentType,
    config: TransitionConfig,
    rng: random.Random,
) -> Component:
    extent = config.PLACEMENT_EXTENT
    return Component(
        id=f"{kind.value}-{uuid.uuid4().hex}",
        position=Vec3(
            rng.uniform(0.0, extent),
            rng.uniform(0.0, extent),
            rng.uniform(0.0, extent),
        ),
        type=kind,
        connections=(),
        efficiency=rng.uniform(config.EFFICIENCY_MIN, config.EFFICIENCY_MAX),
        temperature=rng.uniform(config.TEMPERATURE_MIN, config.TEMPERATURE_MAX),
        load=rng.random(),
    )


def _add_processor(state: ChipState, config: TransitionConfig, rng: random.Random) -> ChipState:
    comp = _new_component(ComponentType.PROCESSOR, config, rng)
    return state.evolve(components=state.components + (comp,))


def _add_memory(state: ChipState, config: TransitionConfig, rng: random.Random) -> ChipState:
    comp = _new_component(ComponentType.MEMORY, config, rng)
    return state.evolve(components=state.components + (comp,))


def _relink_neighbors(
    components: Tuple[Component, ...],
    connections: Tuple[Connection, ...],
) -> Tuple[Component, ...]:
    """Rebuild every component's neighbor-id list from the live interconnect."""
    neighbors: Dict[str, List[str]] = {c.id: [] for c in components}
    for link in connections:
        if link.dest not in neighbors[link.source]:
            neighbors[link.source].append(link.dest)
        if link.source not in neighbors[link.dest]:
            neighbors[link.dest].append(link.source)
    return tuple(replace(c, connections=tuple(neighbors[c.id])) for c in components)


def _optimize_connections(
    state: ChipState,
    config: TransitionConfig,
    rng: random.Random,
) -> ChipState:
    components = state.components
    live = {c.id for c in components}

    # Drop dangling interconnect first.
    links: List[Connection] = [
        k for k in state.connections if k.source in live and k.dest in live
    ]
    linked: Set[frozenset] = {frozenset((k.source, k.dest)) for k in links}

    # Each component gets a link to its nearest neighbor if it lacks one.
    for comp in components:
        others = [o for o in components if o.id != comp.id]
        if not others:
            break
        nearest = min(others, key=lambda o: comp.position.distance_to(o.position))
        pair = frozenset((comp.id, nearest.id))
        if pair in linked:
            continue
        distance = comp.position.distance_to(nearest.position)
        links.append(
            Connection(
                id=f"link-{uuid.uuid4().hex}",
                source=comp.id,
                dest=nearest.id,
                weight=1.0 / (1.0 + distance),
            )
        )
        linked.add(pair)

    perf = state.performance
    performance = PerformanceMetrics(
        power_efficiency=perf.power_efficiency + config.POWER_STEP,
        area_utilization=perf.area_utilization,
        thermal_dissipation=perf.thermal_dissipation,
        signal_integrity=perf.signal_integrity + config.SIGNAL_STEP,
    ).clamped()

    connections = tuple(links)
    return state.evolve(
        components=_relink_neighbors(components, connections),
        connections=connections,
        performance=performance,
    )


def _remove_component(
    state: ChipState,
    config: TransitionConfig,
    rng: random.Random,
) -> ChipState:
    if not state.components:
        return state

    # min() keeps the first of equally inefficient components.
    victim = min(state.components, key=lambda c: c.efficiency)
    components = tuple(c for c in state.components if c.id != victim.id)
    connections = tuple(
        k for k in state.connections if victim.id not in (k.source, k.dest)
    )
    components = tuple(
        replace(c, connections=tuple(n for n in c.connections if n != victim.id))
        for c in components
    )
    return state.evolve(components=components, connections=connections)


TRANSITION_HANDLERS: Mapping[ChipAction, Handler] = {
    ChipAction.ADD_PROCESSOR: _add_processor,
    ChipAction.ADD_MEMORY: _add_memory,
    ChipAction.OPTIMIZE_CONNECTIONS: _optimize_connections,
    ChipAction.REMOVE_COMPONENT: _remove_component,
}

if set(TRANSITION_HANDLERS) != set(ChipAction):
    raise RuntimeError("every ChipAction needs a transition handler")


def resolve_action(action: Union[ChipAction, PolicyAction, int]) -> ChipAction:
    """
    Map an agent's proposal onto the transition action set.

    Raises:
        UnknownAction: if the proposal has no ChipAction counterpart.
    """
    if isinstance(action, ChipAction):
        return action
    if isinstance(action, PolicyAction):
        return action.to_chip_action()
    if isinstance(action, int) and not isinstance(action, bool):
        try:
            return ChipAction(action)
        except ValueError as exc:
            raise UnknownAction(action) from exc
    raise UnknownAction(action)


@dataclass
class ChipTransitionModel:
    """
    Default state-transition function for the optimizer.

    apply_action is pure from the caller's point of view: it never mutates
    its input and always returns a fresh ChipState. The only side effect is
    consumption of the injected random stream.
    """
    config: TransitionConfig = field(default_factory=TransitionConfig)
    rng: random.Random = field(default_factory=random.Random)

    def apply_action(
        self,
        state: ChipState,
        action: Union[ChipAction, PolicyAction, int],
    ) -> ChipState:
        chip_action = resolve_action(action)
        handler = TRANSITION_HANDLERS[chip_action]
        next_state = handler(state, self.config, self.rng)
        next_state = self.apply_jitter(next_state)
        logger.debug(
            "Applied %s: %d components, %d connections",
            chip_action.name,
            len(next_state.components),
            len(next_state.connections),
        )
        return next_state

    __call__ = apply_action

    def apply_jitter(self, state: ChipState) -> ChipState:
        """
        Simulate measurement noise: small upward drift on power, area and
        signal, downward drift on thermal, and Gaussian noise on each
        component's temperature and load.
        """
        cfg = self.config
        perf = state.performance
        performance = PerformanceMetrics(
            power_efficiency=perf.power_efficiency + self.rng.random() * cfg.METRIC_DRIFT_MAX,
            area_utilization=perf.area_utilization + self.rng.random() * cfg.METRIC_DRIFT_MAX,
            thermal_dissipation=perf.thermal_dissipation - self.rng.random() * cfg.THERMAL_DRIFT_MAX,
            signal_integrity=perf.signal_integrity + self.rng.random() * cfg.METRIC_DRIFT_MAX,
        ).clamped()

        components = tuple(
            replace(
                c,
                temperature=c.temperature + self.rng.gauss(0.0, cfg.TEMPERATURE_NOISE_STD),
                load=max(0.0, min(1.0, c.load + self.rng.gauss(0.0, cfg.LOAD_NOISE_STD))),
            )
            for c in state.components
        )
        return state.evolve(components=components, performance=performance)
