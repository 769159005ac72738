"""
engine.py
~~~~~~~~~

Forward propagation, backpropagation and plain stochastic gradient descent
over a ``Network``. Every function mutates the network in place: activations
and pre-activations on the forward pass, deltas and weight gradients on the
backward pass, weights and biases on the update.

The loss is the summed squared error per sample. Deltas are taken as
``(a - y) * a * (1 - a)`` which is the gradient of half that error, the
usual convention for sigmoid units.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..errors import ShapeMismatchError
from ..network import Network
from ..network.units import sigmoid_derivative
from .dataset import XOR_DATA, TrainingSample

logger = logging.getLogger(__name__)


@dataclass
class SampleResult:
    """What one sample looked like during a training step, before its update."""
    sample: TrainingSample
    sample_index: int
    outputs: Tuple[float, ...]
    errors: Tuple[float, ...]
    loss: float

    @property
    def output(self) -> float:
        return self.outputs[0]

    @property
    def error(self) -> float:
        return self.errors[0]


@dataclass
class TrainStepResult:
    loss: float
    sample_results: List[SampleResult] = field(default_factory=list)


def forward_pass(network: Network, inputs: Sequence[float]) -> List[float]:
    """
    Propagate ``inputs`` through the network, layer by layer.

    Args:
        network: Network to evaluate, its activations are overwritten
        inputs: One value per input neuron

    Returns:
        Output layer activations in neuron order

    Raises:
        ShapeMismatchError: If ``inputs`` does not match the input layer size
    """
    input_layer = network.input_layer
    if len(inputs) != input_layer.size:
        raise ShapeMismatchError("inputs", input_layer.size, len(inputs))

    for neuron, value in zip(input_layer.neurons, inputs):
        neuron.set_input(value)

    for layer in network.layers[1:]:
        for neuron in layer.neurons:
            weighted_sum = 0.0
            for weight in network.incoming(neuron.id):
                source = network.get_neuron(weight.from_neuron_id)
                weighted_sum += source.activation * weight.value
            neuron.activate(weighted_sum)

    return network.output_layer.activations()


def backward_pass(network: Network, expected: Sequence[float]) -> None:
    """
    Compute neuron deltas and weight gradients for the last forward pass.

    Must follow a ``forward_pass`` on the matching inputs. Deltas are settled
    for every layer (output first, then hidden layers in reverse) before any
    weight gradient is written.

    Raises:
        ShapeMismatchError: If ``expected`` does not match the output layer size
    """
    output_layer = network.output_layer
    if len(expected) != output_layer.size:
        raise ShapeMismatchError("expected", output_layer.size, len(expected))

    for neuron, target in zip(output_layer.neurons, expected):
        error = neuron.activation - target
        neuron.delta = error * sigmoid_derivative(neuron.activation)

    # Input layer has no delta
    for layer in reversed(network.layers[1:-1]):
        for neuron in layer.neurons:
            delta_sum = 0.0
            for weight in network.outgoing(neuron.id):
                delta_sum += weight.value * network.get_neuron(weight.to_neuron_id).delta
            neuron.delta = delta_sum * sigmoid_derivative(neuron.activation)

    for weight in network.weights:
        source = network.get_neuron(weight.from_neuron_id)
        target = network.get_neuron(weight.to_neuron_id)
        weight.gradient = source.activation * target.delta


def update_weights(network: Network, learning_rate: float) -> None:
    """One plain gradient descent step from the stored gradients and deltas."""
    for weight in network.weights:
        weight.value -= learning_rate * weight.gradient

    for layer in network.layers[1:]:
        for neuron in layer.neurons:
            neuron.bias -= learning_rate * neuron.delta


def compute_loss(network: Network, data: Sequence[TrainingSample] = XOR_DATA) -> float:
    """
    Mean over samples of the summed squared output error.

    Runs a forward pass per sample, so neuron activations are left at the
    state of the last sample.
    """
    total_error = 0.0
    for sample in data:
        outputs = forward_pass(network, sample.inputs)
        total_error += sum((o - e) ** 2 for o, e in zip(outputs, sample.expected))
    return total_error / len(data)


def train_step(network: Network, learning_rate: float) -> float:
    return train_step_with_details(network, learning_rate).loss


def train_step_with_details(
    network: Network,
    learning_rate: float,
    on_sample_processed: Optional[Callable[[SampleResult], None]] = None,
    data: Sequence[TrainingSample] = XOR_DATA,
) -> TrainStepResult:
    """
    Train once on every sample, in table order, updating after each sample.

    Args:
        network: Network to train in place
        learning_rate: Gradient descent step size, 0 leaves the network unchanged
        on_sample_processed: Called with each sample's result after its forward
            pass and before its weight update
        data: Samples to train on, XOR by default

    Returns:
        TrainStepResult with the mean per-sample loss seen during the step
    """
    sample_results: List[SampleResult] = []

    for i, sample in enumerate(data):
        outputs = forward_pass(network, sample.inputs)
        errors = tuple(o - e for o, e in zip(outputs, sample.expected))

        result = SampleResult(
            sample=sample,
            sample_index=i,
            outputs=tuple(outputs),
            errors=errors,
            loss=sum(e * e for e in errors),
        )
        sample_results.append(result)

        if on_sample_processed is not None:
            on_sample_processed(result)

        backward_pass(network, sample.expected)
        update_weights(network, learning_rate)

    loss = sum(r.loss for r in sample_results) / len(sample_results)
    logger.debug(f"Train step lr={learning_rate}: loss={loss:.6f}")
    return TrainStepResult(loss=loss, sample_results=sample_results)


def predict(network: Network, inputs: Sequence[float], threshold: float = 0.5) -> List[int]:
    """Forward pass rounded to class labels."""
    return [1 if o >= threshold else 0 for o in forward_pass(network, inputs)]


def accuracy(network: Network, data: Sequence[TrainingSample] = XOR_DATA, threshold: float = 0.5) -> float:
    """Fraction of samples whose rounded outputs all match the expected values."""
    correct = 0
    for sample in data:
        predicted = predict(network, sample.inputs, threshold)
        if all(p == int(round(e)) for p, e in zip(predicted, sample.expected)):
            correct += 1
    return correct / len(data)
