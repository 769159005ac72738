from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class TrainingSample:
    inputs: Tuple[float, ...]
    expected: Tuple[float, ...]


XOR_DATA: Tuple[TrainingSample, ...] = (
    TrainingSample(inputs=(0.0, 0.0), expected=(0.0,)),
    TrainingSample(inputs=(0.0, 1.0), expected=(1.0,)),
    TrainingSample(inputs=(1.0, 0.0), expected=(1.0,)),
    TrainingSample(inputs=(1.0, 1.0), expected=(0.0,)),
)


def get_training_data() -> Tuple[TrainingSample, ...]:
    return XOR_DATA
