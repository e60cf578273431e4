# tests/test_snapshot.py
from __future__ import annotations

import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chip_design_sim import HolographicProcessor, ProcessorState, SnapshotLoadError
from chip_design_sim.snapshot import PATTERN_SIZE


def _busy_processor() -> HolographicProcessor:
    proc = HolographicProcessor()
    proc.set_wavefunction([complex(1.0, 0.5), complex(0.2, -0.3), complex(0.0, 1.0)])
    proc.propagate_photons(delta_time=0.25, now=1_000.0)
    proc.record_hologram(np.linspace(-1.0, 1.0, 300))
    proc.hologram_fidelity = 0.87
    proc.processing_power = 1.3
    return proc


def test_default_processor_shapes() -> None:
    proc = HolographicProcessor()
    assert proc.interference.shape == (PATTERN_SIZE,)
    assert proc.hologram.shape == (PATTERN_SIZE,)
    assert proc.coherence_length() == pytest.approx(1.0)
    assert proc.entanglement_degree() == 0.0


def test_set_wavefunction_normalizes() -> None:
    proc = HolographicProcessor()
    proc.set_wavefunction([complex(3.0, 0.0), complex(0.0, 4.0)])
    assert sum(abs(a) ** 2 for a in proc.wavefunction) == pytest.approx(1.0)


def test_save_load_round_trip_through_json() -> None:
    source = _busy_processor()
    text = source.save_state().to_json()

    target = HolographicProcessor()
    target.load_state(ProcessorState.from_json(text))

    assert len(target.wavefunction) == len(source.wavefunction)
    for a, b in zip(target.wavefunction, source.wavefunction):
        assert abs(a - b) < 1e-6
    assert np.allclose(target.interference, source.interference, atol=1e-6)
    assert np.allclose(target.hologram, source.hologram, atol=1e-6)
    assert target.hologram_fidelity == pytest.approx(source.hologram_fidelity)
    assert target.processing_power == pytest.approx(source.processing_power)


def test_load_accepts_plain_dict() -> None:
    source = _busy_processor()
    target = HolographicProcessor()
    target.load_state(source.save_state().to_dict())
    assert target.processing_power == pytest.approx(1.3)


def test_missing_field_leaves_processor_untouched() -> None:
    proc = _busy_processor()
    snapshot = proc.save_state().to_dict()
    del snapshot["photonic"]["hologram"]

    before = proc.save_state()
    with pytest.raises(SnapshotLoadError):
        proc.load_state(snapshot)
    assert proc.save_state() == before


def test_missing_section_and_bad_json_raise() -> None:
    proc = HolographicProcessor()
    with pytest.raises(SnapshotLoadError):
        proc.load_state({"quantum_state": {}, "photonic": {}})
    with pytest.raises(SnapshotLoadError):
        ProcessorState.from_json("{not json")


def test_non_positive_processing_power_is_rejected() -> None:
    snapshot = _busy_processor().save_state().to_dict()
    snapshot["metrics"]["processing_power"] = 0.0
    proc = HolographicProcessor()
    with pytest.raises(SnapshotLoadError):
        proc.load_state(snapshot)
    assert proc.processing_power == 1.0


def test_photon_metrics_keys() -> None:
    metrics = _busy_processor().photon_metrics()
    assert set(metrics) == {"hologram_fidelity", "coherence_length", "interference_strength"}
    assert metrics["interference_strength"] <= 1.0


@pytest.mark.parametrize("section_key", ["hologram", "interference"])
def test_short_pattern_is_rejected_and_processor_unchanged(section_key: str) -> None:
    proc = _busy_processor()
    snapshot = proc.save_state().to_dict()
    snapshot["photonic"][section_key] = [0.1, 0.2, 0.3]

    before = proc.save_state()
    with pytest.raises(SnapshotLoadError):
        proc.load_state(snapshot)
    assert proc.save_state() == before
    assert proc.hologram.shape == (PATTERN_SIZE,)

    proc.record_hologram(np.ones(10))
    assert proc.hologram.shape == (PATTERN_SIZE,)


def test_state_object_with_wrong_pattern_size_is_rejected() -> None:
    state = _busy_processor().save_state()
    short = ProcessorState(
        wavefunction=state.wavefunction,
        coherence=state.coherence,
        entanglement=state.entanglement,
        interference=state.interference[:10],
        hologram=state.hologram,
        efficiency=state.efficiency,
        processing_power=state.processing_power,
    )
    proc = HolographicProcessor()
    with pytest.raises(SnapshotLoadError):
        proc.load_state(short)
    assert proc.interference.shape == (PATTERN_SIZE,)
