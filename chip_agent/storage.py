from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict
import logging
import re

import torch
from torch import Tensor

from chip_design_sim.errors import PersistenceError

logger = logging.getLogger(__name__)

_SLOT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass
class ModelStore:
    """
    Named persistent slots for model weights, one `<slot>.pt` file each.
    """
    root: Path = Path("checkpoints")
    device: torch.device = torch.device("cpu")

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def path_for(self, slot: str) -> Path:
        if not _SLOT_PATTERN.match(slot):
            raise PersistenceError(f"Invalid slot name: {slot!r}")
        return self.root / f"{slot}.pt"

    def exists(self, slot: str) -> bool:
        return self.path_for(slot).is_file()

    def save(self, slot: str, state_dict: Dict[str, Tensor]) -> Path:
        """
        Raises:
            PersistenceError: if the weights cannot be written.
        """
        path = self.path_for(slot)
        tmp_path = path.with_suffix(".pt.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            torch.save(state_dict, tmp_path)
            tmp_path.replace(path)
        except (OSError, RuntimeError) as exc:
            raise PersistenceError(f"Failed to save slot {slot!r} to {path}: {exc}") from exc
        logger.info("Saved model slot %r to %s", slot, path)
        return path

    def load(self, slot: str) -> Dict[str, Tensor]:
        """
        Raises:
            PersistenceError: if the slot is missing or unreadable.
        """
        path = self.path_for(slot)
        if not path.is_file():
            raise PersistenceError(f"No saved model in slot {slot!r} ({path})")
        try:
            state_dict = torch.load(path, map_location=self.device, weights_only=True)
        except Exception as exc:
            # torch.load surfaces corruption as a variety of exception types.
            raise PersistenceError(f"Corrupt model slot {slot!r} ({path}): {exc}") from exc
        if not isinstance(state_dict, dict):
            raise PersistenceError(f"Slot {slot!r} does not hold a state_dict")
        return state_dict


def restore_into(
    store: ModelStore,
    slot: str,
    live: torch.nn.Module,
    fresh: torch.nn.Module,
) -> bool:
    """
    Load `slot` into `fresh` first and copy into `live` only on success, so a
    missing or corrupt slot never touches the live weights.

    Returns:
        True if the weights were restored, False otherwise (logged).
    """
    try:
        state_dict = store.load(slot)
        fresh.load_state_dict(state_dict)
    except (PersistenceError, RuntimeError, KeyError) as exc:
        logger.error("Failed to load model slot %r: %s", slot, exc)
        return False
    live.load_state_dict(fresh.state_dict())
    logger.info("Restored model slot %r", slot)
    return True
