from typing import List, Optional

from .neuron import Neuron

LAYER_PREFIXES = {"input": "i", "hidden": "h", "output": "o"}


def layer_type(index: int, total_layers: int) -> str:
    """The type of a layer follows from its position alone."""
    if index == 0:
        return "input"
    if index == total_layers - 1:
        return "output"
    return "hidden"


class Layer:
    """Ordered neurons of one type. Ids look like ``h2_0`` (type prefix, layer, position)."""
    def __init__(self, index: int, size: int, total_layers: int):
        self.index = index
        self.type = layer_type(index, total_layers)

        prefix = LAYER_PREFIXES[self.type]
        self.neurons: List[Neuron] = [
            Neuron(f"{prefix}{index}_{i}", index, i) for i in range(size)
        ]

    @property
    def size(self) -> int:
        return len(self.neurons)

    def neuron_at(self, position: int) -> Optional[Neuron]:
        if 0 <= position < len(self.neurons):
            return self.neurons[position]
        return None

    def activations(self) -> List[float]:
        return [n.activation for n in self.neurons]

    def reset(self):
        for neuron in self.neurons:
            neuron.reset_state()

    def __repr__(self):
        return f"Layer(index={self.index}, type='{self.type}', size={self.size})"
