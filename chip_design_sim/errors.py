from __future__ import annotations


class ChipOptimizerError(Exception):
    """Base class for every error raised by the chip optimizer."""


class EncodingError(ChipOptimizerError):
    """A ChipState could not be vectorized (missing or malformed fields)."""


class InferenceError(ChipOptimizerError):
    """A forward pass failed, e.g. because of a shape mismatch."""


class TrainingError(ChipOptimizerError):
    """Gradient computation or application failed."""


class PersistenceError(ChipOptimizerError):
    """A model or state snapshot could not be saved or loaded."""


class SnapshotLoadError(PersistenceError):
    """A serialized processor snapshot is missing a field or is malformed."""


class UnknownAction(ChipOptimizerError):
    """An action outside the receiver's closed action set was proposed."""

    def __init__(self, action: object) -> None:
        super().__init__(f"Unknown action: {action!r}")
        self.action = action
