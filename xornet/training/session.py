import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..config import Config
from ..network import Network, reinitialize_network
from .engine import SampleResult, compute_loss, train_step_with_details
from .weight_history import WeightDelta, WeightDeltaTracker

logger = logging.getLogger(__name__)


@dataclass
class TrainingStepSummary:
    step_number: int
    samples: List[SampleResult]
    total_loss: float
    previous_loss: float
    is_improving: bool
    weight_deltas: Dict[str, WeightDelta] = field(default_factory=dict)


class TrainingSession:
    """
    Training state for one network: learning rate, step counter and loss trend.

    One session drives one network. Calls are synchronous and must not
    overlap; nothing here locks.
    """
    def __init__(self, network: Network, learning_rate: Optional[float] = None, config: Optional[Config] = None):
        self.network = network
        self.config = config or Config()
        self.min_learning_rate = getattr(self.config, "min_learning_rate", 0.01)
        self.max_learning_rate = getattr(self.config, "max_learning_rate", 2.0)
        self.default_learning_rate = getattr(self.config, "learning_rate", 0.5)

        self.learning_rate = self.default_learning_rate
        if learning_rate is not None:
            self.set_learning_rate(learning_rate)

        self.tracker = WeightDeltaTracker(getattr(self.config, "history_depth", 10))
        self.step_count = 0
        self.current_loss = compute_loss(network)
        self.previous_loss = self.current_loss

    def set_learning_rate(self, rate: float) -> float:
        clamped = max(self.min_learning_rate, min(self.max_learning_rate, rate))
        if clamped != rate:
            logger.info(f"Learning rate {rate} clamped to {clamped}")
        self.learning_rate = clamped
        return clamped

    def reset_learning_rate(self) -> float:
        self.learning_rate = self.default_learning_rate
        return self.learning_rate

    def step(self, on_sample_processed: Optional[Callable[[SampleResult], None]] = None) -> TrainingStepSummary:
        self.tracker.capture_snapshot(self.network.weights)
        result = train_step_with_details(self.network, self.learning_rate, on_sample_processed)
        deltas = self.tracker.compute_deltas(self.network.weights)

        self.step_count += 1
        self.previous_loss = self.current_loss
        self.current_loss = result.loss

        if not math.isfinite(result.loss):
            logger.warning(
                f"Step {self.step_count}: loss is {result.loss} at learning rate {self.learning_rate}"
            )
        elif self.step_count % 100 == 0:
            logger.debug(f"Step {self.step_count}: loss = {result.loss:.4f}")

        return TrainingStepSummary(
            step_number=self.step_count,
            samples=result.sample_results,
            total_loss=result.loss,
            previous_loss=self.previous_loss,
            is_improving=result.loss < self.previous_loss,
            weight_deltas=deltas,
        )

    def run(self, steps: int) -> List[TrainingStepSummary]:
        return [self.step() for _ in range(steps)]

    def reset(self, rng=None) -> None:
        """Re-draw the network's parameters in place and restart the counters."""
        reinitialize_network(self.network, rng)
        self.tracker.clear()
        self.step_count = 0
        self.current_loss = compute_loss(self.network)
        self.previous_loss = self.current_loss
        logger.info(f"Session reset, loss = {self.current_loss:.4f}")
