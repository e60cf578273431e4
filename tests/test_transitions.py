# tests/test_transitions.py
from __future__ import annotations

import pathlib
import random
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chip_design_sim import (
    ChipAction,
    ChipState,
    ChipTransitionModel,
    Component,
    ComponentType,
    Connection,
    EncodingError,
    PolicyAction,
    UnknownAction,
    Vec3,
    resolve_action,
)
from chip_design_sim.transitions import TRANSITION_HANDLERS


def _model(seed: int = 0) -> ChipTransitionModel:
    return ChipTransitionModel(rng=random.Random(seed))


def _component(cid: str, efficiency: float, x: float = 0.0) -> Component:
    return Component(
        id=cid,
        position=Vec3(x, 0.0, 0.0),
        type=ComponentType.MEMORY,
        efficiency=efficiency,
    )


def test_add_processor_places_valid_components() -> None:
    model = _model()
    state = ChipState.default()
    for _ in range(5):
        state = model.apply_action(state, ChipAction.ADD_PROCESSOR)

    assert len(state.components) == 5
    assert len({c.id for c in state.components}) == 5
    for comp in state.components:
        assert comp.type is ComponentType.PROCESSOR
        assert 75.0 <= comp.efficiency <= 100.0
        assert 0.0 <= comp.load <= 1.0
        assert 0.0 <= comp.position.x <= 10.0


def test_add_memory_appends_memory_component() -> None:
    state = _model().apply_action(ChipState.default(), ChipAction.ADD_MEMORY)
    assert [c.type for c in state.components] == [ComponentType.MEMORY]


def test_optimize_connections_is_monotone_and_bounded() -> None:
    model = _model(1)
    state = ChipState.default()
    for _ in range(3):
        state = model.apply_action(state, ChipAction.ADD_PROCESSOR)

    power = state.performance.power_efficiency
    signal = state.performance.signal_integrity
    for _ in range(60):
        state = model.apply_action(state, ChipAction.OPTIMIZE_CONNECTIONS)
        assert state.performance.power_efficiency >= power
        assert state.performance.signal_integrity >= signal
        assert state.performance.power_efficiency <= 100.0
        assert state.performance.signal_integrity <= 100.0
        power = state.performance.power_efficiency
        signal = state.performance.signal_integrity

    assert power == 100.0
    assert signal == 100.0


def test_optimize_connections_links_nearest_neighbors() -> None:
    state = ChipState(
        components=(
            _component("a", 90.0, x=0.0),
            _component("b", 90.0, x=1.0),
            _component("c", 90.0, x=9.0),
        )
    )
    state = _model().apply_action(state, ChipAction.OPTIMIZE_CONNECTIONS)

    pairs = {frozenset((k.source, k.dest)) for k in state.connections}
    assert pairs == {frozenset(("a", "b")), frozenset(("b", "c"))}
    assert set(state.component("b").connections) == {"a", "c"}
    for link in state.connections:
        assert 0.0 < link.weight <= 1.0


def test_optimize_connections_prunes_dangling_links() -> None:
    state = ChipState(
        components=(_component("a", 90.0), _component("b", 90.0, x=2.0)),
        connections=(Connection(id="stale", source="a", dest="ghost"),),
    )
    state = _model().apply_action(state, ChipAction.OPTIMIZE_CONNECTIONS)
    assert all(k.id != "stale" for k in state.connections)
    assert all(state.effective_weight(k) > 0.0 for k in state.connections)


def test_remove_component_drops_least_efficient_and_its_links() -> None:
    state = ChipState(
        components=(
            _component("a", 90.0),
            _component("b", 76.0, x=1.0),
            _component("c", 76.0, x=2.0),
        ),
        connections=(
            Connection(id="ab", source="a", dest="b"),
            Connection(id="ac", source="a", dest="c"),
        ),
    )
    state = _model().apply_action(state, ChipAction.REMOVE_COMPONENT)

    assert [c.id for c in state.components] == ["a", "c"]
    assert [k.id for k in state.connections] == ["ac"]
    assert "b" not in state.component("a").connections


def test_remove_on_empty_design_is_a_noop() -> None:
    state = _model().apply_action(ChipState.default(), ChipAction.REMOVE_COMPONENT)
    assert state.components == ()


def test_apply_action_does_not_mutate_input() -> None:
    original = ChipState(components=(_component("a", 80.0),))
    snapshot = original.to_dict()
    _model().apply_action(original, ChipAction.ADD_PROCESSOR)
    _model().apply_action(original, ChipAction.REMOVE_COMPONENT)
    assert original.to_dict() == snapshot


def test_same_seed_same_metrics() -> None:
    a = _model(7).apply_action(ChipState.default(), ChipAction.OPTIMIZE_CONNECTIONS)
    b = _model(7).apply_action(ChipState.default(), ChipAction.OPTIMIZE_CONNECTIONS)
    assert a.performance == b.performance


def test_reserved_policy_action_is_unknown() -> None:
    with pytest.raises(UnknownAction):
        _model().apply_action(ChipState.default(), PolicyAction.RESERVED_5)


@pytest.mark.parametrize("bad", [4, -1, "AddProcessor", True, 2.0])
def test_resolve_action_rejects_unknown_values(bad: object) -> None:
    with pytest.raises(UnknownAction):
        resolve_action(bad)  # type: ignore[arg-type]


def test_resolve_action_maps_shared_indices() -> None:
    assert resolve_action(PolicyAction.ADD_MEMORY) is ChipAction.ADD_MEMORY
    assert resolve_action(3) is ChipAction.REMOVE_COMPONENT


def test_chip_state_dict_round_trip() -> None:
    model = _model(3)
    state = ChipState.default()
    for action in (ChipAction.ADD_PROCESSOR, ChipAction.ADD_MEMORY, ChipAction.OPTIMIZE_CONNECTIONS):
        state = model.apply_action(state, action)
    assert ChipState.from_dict(state.to_dict()) == state


@pytest.mark.parametrize("position", [[1.0, 2.0], [1.0, 2.0, 3.0, 4.0]])
def test_from_dict_requires_three_coordinates(position: list) -> None:
    data = ChipState(components=(_component("a", 80.0),)).to_dict()
    data["components"][0]["position"] = position
    with pytest.raises(EncodingError):
        ChipState.from_dict(data)


def test_every_chip_action_has_a_handler() -> None:
    assert set(TRANSITION_HANDLERS) == set(ChipAction)
