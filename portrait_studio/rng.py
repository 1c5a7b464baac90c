from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

@dataclass(slots=True)
class DeterministicRNG:
    seed: Optional[int] = None
    _random: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)

    def uniform(self, a: float, b: float) -> float:
        if b <= a:
            return a
        return self._random.uniform(a, b)


__all__ = ["DeterministicRNG"]
