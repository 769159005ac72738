from .config import Config
from .errors import InvalidArchitectureError, NetworkError, ShapeMismatchError, TopologyError
from .investigation_loop import InvestigationLoop
from .network import Network, create_network, reinitialize_network
from .training import (
    XOR_DATA,
    TrainingSession,
    backward_pass,
    compute_loss,
    forward_pass,
    train_step,
    train_step_with_details,
    update_weights,
)

__version__ = "1.0.0"

__all__ = [
    "Config",
    "InvalidArchitectureError",
    "InvestigationLoop",
    "Network",
    "NetworkError",
    "ShapeMismatchError",
    "TopologyError",
    "TrainingSession",
    "XOR_DATA",
    "backward_pass",
    "compute_loss",
    "create_network",
    "forward_pass",
    "reinitialize_network",
    "train_step",
    "train_step_with_details",
    "update_weights",
]
