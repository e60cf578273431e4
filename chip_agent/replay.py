from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Tuple
import random
import threading

from chip_design_sim.entities import Transition


@dataclass
class ExperienceBuffer:
    """
    Bounded FIFO store of transitions for experience replay.

    At capacity, adding evicts the oldest transition. Sampling is uniform
    *with replacement*, so a batch may contain duplicates.
    """
    capacity: int = 10_000
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")
        self._items: Deque[Transition] = deque(maxlen=self.capacity)
        # add/sample are mutually exclusive so eviction order stays FIFO
        # even if several threads feed the buffer.
        self._lock = threading.Lock()

    def add(self, transition: Transition) -> None:
        with self._lock:
            self._items.append(transition)

    def sample(self, batch_size: int) -> List[Transition]:
        with self._lock:
            if not self._items:
                raise ValueError("Cannot sample from an empty experience buffer")
            return self.rng.choices(self._items, k=batch_size)

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def contents(self) -> Tuple[Transition, ...]:
        """Snapshot of the stored transitions, oldest first."""
        with self._lock:
            return tuple(self._items)
