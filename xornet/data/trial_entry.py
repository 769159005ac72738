from typing import Optional, Dict, List
from dataclasses import dataclass, field
import time


@dataclass
class TrialEntry:
    id: str
    architecture: List[int]
    seed: int

    learning_rate: float = 0.5
    steps: int = 0
    timestamp: float = field(default_factory=time.time)
    iteration_found: int = 0
    duration: Optional[float] = None

    loss_curve: List[float] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return "-".join(str(size) for size in self.architecture)
