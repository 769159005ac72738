from dataclasses import dataclass, field
from typing import List, Sequence

from ..network import Network
from .engine import forward_pass


@dataclass
class NeuronInput:
    source_id: str
    activation: float
    weight: float


@dataclass
class NeuronCalculation:
    neuron_id: str
    inputs: List[NeuronInput]
    bias: float
    pre_activation: float
    activation: float
    formula: str = ""


@dataclass
class LayerStep:
    layer_index: int
    layer_type: str
    label: str
    neurons: List[NeuronCalculation] = field(default_factory=list)


def _fmt(value: float) -> str:
    return f"{value:.3f}"


def format_calculation(calc: NeuronCalculation) -> str:
    """
    Render one neuron's computation, e.g.
    ``(0.500×1.234) + (0.300×-0.567) + bias(0.100) = 0.547 → σ = 0.633``.
    """
    if not calc.inputs:
        return f"Input value: {_fmt(calc.activation)}"

    terms = " + ".join(f"({_fmt(i.activation)}×{_fmt(i.weight)})" for i in calc.inputs)
    return f"{terms} + bias({_fmt(calc.bias)}) = {_fmt(calc.pre_activation)} → σ = {_fmt(calc.activation)}"


def generate_walkthrough(network: Network, inputs: Sequence[float]) -> List[LayerStep]:
    """Run a forward pass and break it down into per-layer, per-neuron calculations."""
    forward_pass(network, inputs)

    steps = []
    hidden_count = 0
    for layer in network.layers:
        if layer.type == "hidden":
            hidden_count += 1
            label = f"Hidden {hidden_count}"
        else:
            label = layer.type.capitalize()

        step = LayerStep(layer_index=layer.index, layer_type=layer.type, label=label)
        for neuron in layer.neurons:
            neuron_inputs = []
            for weight in network.incoming(neuron.id):
                source = network.get_neuron(weight.from_neuron_id)
                neuron_inputs.append(NeuronInput(source.id, source.activation, weight.value))

            calc = NeuronCalculation(
                neuron_id=neuron.id,
                inputs=neuron_inputs,
                bias=neuron.bias,
                pre_activation=neuron.pre_activation,
                activation=neuron.activation,
            )
            calc.formula = format_calculation(calc)
            step.neurons.append(calc)
        steps.append(step)

    return steps


def get_prediction(steps: List[LayerStep]) -> float:
    if not steps or not steps[-1].neurons:
        return 0.0
    return steps[-1].neurons[0].activation


def is_prediction_correct(steps: List[LayerStep], expected: float, threshold: float = 0.5) -> bool:
    predicted = 1 if get_prediction(steps) >= threshold else 0
    return predicted == int(round(expected))
