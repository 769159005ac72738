import math


def sigmoid(x):
    """Logistic function, maps any real number into (0, 1)."""
    # Split on sign so math.exp never overflows for large |x|
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def sigmoid_derivative(activation):
    """Sigmoid slope expressed through its output: a * (1 - a)."""
    return activation * (1.0 - activation)


class Neuron:
    """A single unit of a layer. Input neurons only pass their value through."""
    def __init__(self, id, layer_index, position_in_layer, bias=0.0):
        self.id = id
        self.layer_index = layer_index
        self.position_in_layer = position_in_layer
        self.bias = bias
        self.activation = 0.0
        self.pre_activation = 0.0
        self.delta = 0.0

    def activate(self, weighted_sum):
        self.pre_activation = weighted_sum + self.bias
        self.activation = sigmoid(self.pre_activation)

    def set_input(self, value):
        self.activation = value
        self.pre_activation = value

    def reset_state(self):
        """Clear activations and delta, keep the bias."""
        self.activation = 0.0
        self.pre_activation = 0.0
        self.delta = 0.0

    def __repr__(self):
        return f"Neuron(id={self.id}, bias={self.bias:.3f}, a={self.activation:.3f})"
