from .neuron import Neuron, sigmoid, sigmoid_derivative
from .weight import Weight
from .layer import Layer, layer_type

__all__ = ["Layer", "Neuron", "Weight", "layer_type", "sigmoid", "sigmoid_derivative"]
