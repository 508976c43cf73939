# weight_vector.py
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Dict[str, float] = {
    "recency": 0.20,
    "relationship": 0.20,
    "trend": 0.15,
    "breakTotal": 0.10,
    "digitFrequency": 0.15,
    "dayOfWeek": 0.10,
    "gap": 0.10,
}


def _normalize(values: Dict[str, float]) -> Dict[str, float]:
    total = float(sum(values.values()))
    if total <= 0:
        share = 1.0 / len(values)
        return {k: share for k in values}
    return {k: v / total for k, v in values.items()}


@dataclass(frozen=True)
class WeightVector:
    """Non-negative per-expert weights summing to 1.0. Replaced whole, never mutated."""

    values: Mapping[str, float]

    @classmethod
    def default(cls, keys: Optional[Iterable[str]] = None) -> "WeightVector":
        keys = list(keys) if keys is not None else list(DEFAULT_WEIGHTS)
        known = [DEFAULT_WEIGHTS[k] for k in keys if k in DEFAULT_WEIGHTS]
        fallback = float(np.mean(known)) if known else 1.0
        raw = {k: DEFAULT_WEIGHTS.get(k, fallback) for k in keys}
        return cls(_normalize(raw))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, float]],
                  keys: Optional[Iterable[str]] = None,
                  floor: float = 0.0, ceiling: float = 1.0) -> "WeightVector":
        """Keep known keys, fill missing ones from defaults, drop the rest, renormalize."""
        base = dict(cls.default(keys).values)
        if data:
            dropped = sorted(set(data) - set(base))
            if dropped:
                logger.info("Dropping stale weight keys: %s", ", ".join(dropped))
            for k in base:
                if k in data:
                    try:
                        base[k] = float(data[k])
                    except (TypeError, ValueError):
                        logger.warning("Ignoring non-numeric weight %s=%r", k, data[k])
        return cls(base).clamped(floor, ceiling)

    def clamped(self, floor: float, ceiling: float) -> "WeightVector":
        clipped = {k: min(ceiling, max(floor, float(v))) for k, v in self.values.items()}
        return WeightVector(_normalize(clipped))

    def keys(self) -> Sequence[str]:
        return list(self.values)

    def __getitem__(self, key: str) -> float:
        return self.values[key]

    def get(self, key: str, default: float = 0.0) -> float:
        return self.values.get(key, default)

    def total(self) -> float:
        return float(sum(self.values.values()))

    def as_array(self, keys: Optional[Sequence[str]] = None) -> np.ndarray:
        keys = keys or self.keys()
        return np.array([self.values.get(k, 0.0) for k in keys], dtype=np.float32)

    @classmethod
    def from_array(cls, arr, keys: Sequence[str], floor: float = 0.0,
                   ceiling: float = 1.0) -> "WeightVector":
        arr = np.nan_to_num(np.asarray(arr, dtype=float).reshape(-1), nan=0.0)
        return cls(dict(zip(keys, arr.tolist()))).clamped(floor, ceiling)

    def to_dict(self) -> Dict[str, float]:
        return {k: round(float(v), 6) for k, v in self.values.items()}
