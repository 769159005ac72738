from .network import (
    Network,
    create_network,
    init_bias,
    reinitialize_network,
    to_graph,
    validate_topology,
    visualize_network,
    xavier_init,
)
from .units import Layer, Neuron, Weight, layer_type, sigmoid, sigmoid_derivative

__all__ = [
    "Layer",
    "Network",
    "Neuron",
    "Weight",
    "create_network",
    "init_bias",
    "layer_type",
    "reinitialize_network",
    "sigmoid",
    "sigmoid_derivative",
    "to_graph",
    "validate_topology",
    "visualize_network",
    "xavier_init",
]
