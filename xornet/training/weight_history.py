from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List

from ..network.units import Weight

# Upper bounds (exclusive) of |delta| per magnitude class
MAGNITUDE_THRESHOLDS = {
    "none": 0.001,
    "small": 0.01,
    "medium": 0.1,
}


def delta_magnitude(delta: float) -> str:
    size = abs(delta)
    for name, bound in MAGNITUDE_THRESHOLDS.items():
        if size < bound:
            return name
    return "large"


def delta_direction(delta: float) -> str:
    if abs(delta) < MAGNITUDE_THRESHOLDS["none"]:
        return "stable"
    return "increasing" if delta > 0 else "decreasing"


@dataclass
class WeightDelta:
    weight_id: str
    previous_value: float
    current_value: float
    delta: float
    magnitude: str
    direction: str


class WeightDeltaTracker:
    """
    Tracks how weights move between training steps.

    Call ``capture_snapshot`` before a step and ``compute_deltas`` after it.
    Each snapshot also lands in a bounded per-weight history.
    """
    def __init__(self, history_depth: int = 10):
        self.history_depth = history_depth
        self._previous: Dict[str, float] = {}
        self._history: Dict[str, Deque[float]] = {}

    def capture_snapshot(self, weights: Iterable[Weight]) -> None:
        for weight in weights:
            self._previous[weight.id] = weight.value
            history = self._history.setdefault(weight.id, deque(maxlen=self.history_depth))
            history.append(weight.value)

    def compute_deltas(self, weights: Iterable[Weight]) -> Dict[str, WeightDelta]:
        deltas = {}
        for weight in weights:
            previous = self._previous.get(weight.id)
            # No snapshot yet for this weight
            if previous is None:
                continue

            delta = weight.value - previous
            deltas[weight.id] = WeightDelta(
                weight_id=weight.id,
                previous_value=previous,
                current_value=weight.value,
                delta=delta,
                magnitude=delta_magnitude(delta),
                direction=delta_direction(delta),
            )
        return deltas

    def get_history(self, weight_id: str) -> List[float]:
        return list(self._history.get(weight_id, ()))

    def clear(self) -> None:
        self._previous.clear()
        self._history.clear()
