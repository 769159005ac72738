from .dataset import XOR_DATA, TrainingSample, get_training_data
from .engine import (
    SampleResult,
    TrainStepResult,
    accuracy,
    backward_pass,
    compute_loss,
    forward_pass,
    predict,
    train_step,
    train_step_with_details,
    update_weights,
)
from .session import TrainingSession, TrainingStepSummary
from .walkthrough import LayerStep, NeuronCalculation, format_calculation, generate_walkthrough
from .weight_history import WeightDelta, WeightDeltaTracker

__all__ = [
    "XOR_DATA",
    "LayerStep",
    "NeuronCalculation",
    "SampleResult",
    "TrainStepResult",
    "TrainingSample",
    "TrainingSession",
    "TrainingStepSummary",
    "WeightDelta",
    "WeightDeltaTracker",
    "accuracy",
    "backward_pass",
    "compute_loss",
    "format_calculation",
    "forward_pass",
    "generate_walkthrough",
    "get_training_data",
    "predict",
    "train_step",
    "train_step_with_details",
    "update_weights",
]
