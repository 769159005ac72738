import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import networkx as nx

from .units import Layer, Neuron, Weight, layer_type
from ..errors import InvalidArchitectureError, TopologyError

logger = logging.getLogger(__name__)

WEIGHT_SCALE = 2.0
BIAS_SCALE = 0.1


def xavier_limit(fan_in: int, fan_out: int) -> float:
    return math.sqrt(6 / (fan_in + fan_out))


def xavier_init(fan_in: int, fan_out: int, rng=None, scale: float = WEIGHT_SCALE) -> float:
    """
    Draw a weight from a scaled Glorot uniform distribution.

    The default 2x scale spreads the initial pre-activations of deep sigmoid
    stacks far enough from zero that the four XOR outputs do not all start
    at 0.5. It lowers, but does not remove, the chance of landing on the
    0.25 loss plateau.
    """
    rng = rng or random
    return rng.uniform(-1.0, 1.0) * xavier_limit(fan_in, fan_out) * scale


def init_bias(fan_in: int, fan_out: int, rng=None, scale: float = BIAS_SCALE) -> float:
    """Small bias, a tenth of the unscaled Glorot bound."""
    rng = rng or random
    return rng.uniform(-1.0, 1.0) * xavier_limit(fan_in, fan_out) * scale


class Network:
    """
    Fully connected feed-forward network stored as layers of neurons plus a
    flat list of weights referencing neurons by id.

    Lookups go through dictionaries built once at construction, so the
    topology must not be edited after the network exists. Only values
    (weights, biases, activations, deltas, gradients) change.
    """
    def __init__(self, architecture: Sequence[int], rng=None,
                 weight_scale: float = WEIGHT_SCALE, bias_scale: float = BIAS_SCALE):
        self.architecture: List[int] = list(architecture)
        self.weight_scale = weight_scale
        self.bias_scale = bias_scale

        total = len(self.architecture)
        self.layers: List[Layer] = [Layer(i, size, total) for i, size in enumerate(self.architecture)]

        # Input biases stay 0
        for layer in self.layers[1:]:
            fan_in = self.architecture[layer.index - 1]
            fan_out = self.architecture[layer.index]
            for neuron in layer.neurons:
                neuron.bias = init_bias(fan_in, fan_out, rng, bias_scale)

        self.weights: List[Weight] = []
        for from_layer, to_layer in zip(self.layers, self.layers[1:]):
            fan_in, fan_out = from_layer.size, to_layer.size
            for from_neuron in from_layer.neurons:
                for to_neuron in to_layer.neurons:
                    value = xavier_init(fan_in, fan_out, rng, weight_scale)
                    self.weights.append(Weight(from_neuron.id, to_neuron.id, value))

        self._build_index()

    def _build_index(self):
        self._neurons: Dict[str, Neuron] = {n.id: n for layer in self.layers for n in layer.neurons}
        self._weights: Dict[str, Weight] = {w.id: w for w in self.weights}
        self._pairs: Dict[Tuple[str, str], Weight] = {}
        self._incoming: Dict[str, List[Weight]] = {nid: [] for nid in self._neurons}
        self._outgoing: Dict[str, List[Weight]] = {nid: [] for nid in self._neurons}

        for weight in self.weights:
            self._pairs[(weight.from_neuron_id, weight.to_neuron_id)] = weight
            self._incoming[weight.to_neuron_id].append(weight)
            self._outgoing[weight.from_neuron_id].append(weight)

    # --- lookups ---
    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    @property
    def neurons(self) -> List[Neuron]:
        return list(self._neurons.values())

    @property
    def total_neurons(self) -> int:
        return len(self._neurons)

    @property
    def total_weights(self) -> int:
        return len(self.weights)

    def get_neuron(self, neuron_id: str) -> Optional[Neuron]:
        return self._neurons.get(neuron_id)

    def get_weight(self, weight_id: str) -> Optional[Weight]:
        return self._weights.get(weight_id)

    def get_weight_between(self, from_id: str, to_id: str) -> Optional[Weight]:
        return self._pairs.get((from_id, to_id))

    def incoming(self, neuron_id: str) -> List[Weight]:
        return self._incoming.get(neuron_id, [])

    def outgoing(self, neuron_id: str) -> List[Weight]:
        return self._outgoing.get(neuron_id, [])

    def __repr__(self):
        return f"Network(architecture={self.architecture}, weights={self.total_weights})"


def create_network(architecture: Sequence[int], rng=None,
                   weight_scale: float = WEIGHT_SCALE, bias_scale: float = BIAS_SCALE) -> Network:
    """
    Build a network for the given layer sizes, e.g. ``[2, 2, 1]`` for XOR.

    ``rng`` is anything with a ``uniform(a, b)`` method (a ``random.Random``
    for reproducible draws); the ``random`` module is used when omitted.
    """
    architecture = list(architecture)
    if len(architecture) < 2:
        raise InvalidArchitectureError(
            f"Network must have at least 2 layers (input and output), got {architecture}"
        )
    for size in architecture:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise InvalidArchitectureError(f"Layer sizes must be positive integers, got {architecture}")

    network = Network(architecture, rng, weight_scale, bias_scale)
    logger.debug(f"Created network {architecture}: {network.total_neurons} neurons, {network.total_weights} weights")
    return network


def reinitialize_network(network: Network, rng=None) -> None:
    """
    Re-draw every weight and bias in place and zero all transient state.

    Neuron and weight objects (and their ids) are kept, so references held
    elsewhere stay valid.
    """
    architecture = network.architecture
    for weight in network.weights:
        from_neuron = network.get_neuron(weight.from_neuron_id)
        to_neuron = network.get_neuron(weight.to_neuron_id)
        fan_in = architecture[from_neuron.layer_index]
        fan_out = architecture[to_neuron.layer_index]
        weight.value = xavier_init(fan_in, fan_out, rng, network.weight_scale)
        weight.gradient = 0.0

    for layer in network.layers:
        layer.reset()
        if layer.index == 0:
            continue
        fan_in = architecture[layer.index - 1]
        fan_out = architecture[layer.index]
        for neuron in layer.neurons:
            neuron.bias = init_bias(fan_in, fan_out, rng, network.bias_scale)

    logger.debug(f"Reinitialised network {architecture}")


# --- graph utils ---
def to_graph(network: Network) -> nx.DiGraph:
    """Export the network as a directed graph with per-node and per-edge state."""
    G = nx.DiGraph()
    for layer in network.layers:
        for neuron in layer.neurons:
            G.add_node(
                neuron.id,
                layer=layer.index,
                position=neuron.position_in_layer,
                type=layer.type,
                bias=neuron.bias,
                activation=neuron.activation,
                delta=neuron.delta,
            )
    for weight in network.weights:
        G.add_edge(weight.from_neuron_id, weight.to_neuron_id, id=weight.id,
                   weight=weight.value, gradient=weight.gradient)
    return G


def validate_topology(network: Network) -> None:
    """Raise TopologyError if the network breaks its layered, fully connected shape."""
    if len(network.layers) != len(network.architecture) or len(network.layers) < 2:
        raise TopologyError(
            f"{len(network.layers)} layers for architecture {network.architecture}"
        )

    total = len(network.layers)
    for layer, size in zip(network.layers, network.architecture):
        expected_type = layer_type(layer.index, total)
        if layer.type != expected_type:
            raise TopologyError(f"Layer {layer.index} is '{layer.type}', expected '{expected_type}'")
        if layer.size != size:
            raise TopologyError(f"Layer {layer.index} has {layer.size} neurons, expected {size}")

    G = to_graph(network)
    if G.number_of_nodes() != sum(network.architecture):
        raise TopologyError("Neuron ids are not unique")
    if len({w.id for w in network.weights}) != len(network.weights):
        raise TopologyError("Weight ids are not unique")

    for u, v in G.edges():
        if G.nodes[u]["layer"] + 1 != G.nodes[v]["layer"]:
            raise TopologyError(f"Weight {u}->{v} does not join adjacent layers")

    expected_edges = sum(a * b for a, b in zip(network.architecture, network.architecture[1:]))
    if G.number_of_edges() != expected_edges or len(network.weights) != expected_edges:
        raise TopologyError(
            f"{len(network.weights)} weights, expected {expected_edges} for full connectivity"
        )

    if not nx.is_directed_acyclic_graph(G):
        raise TopologyError("Network graph contains a cycle")


def visualize_network(network: Network, ax=None):
    """
    Draw the network layer by layer.
    Inputs = green, hidden = blue, outputs = red.
    Positive weights = blue edges, negative = red, width follows |weight|.
    """
    G = to_graph(network)

    pos = {}
    for layer in network.layers:
        offset = (layer.size - 1) / 2
        for neuron in layer.neurons:
            pos[neuron.id] = (layer.index, offset - neuron.position_in_layer)

    colors = {"input": "lightgreen", "hidden": "lightblue", "output": "salmon"}
    node_colors = [colors[G.nodes[n]["type"]] for n in G.nodes()]
    nx.draw_networkx_nodes(G, pos, node_color=node_colors, node_size=800, ax=ax)

    edge_colors = []
    widths = []
    for u, v, data in G.edges(data=True):
        edge_colors.append("tab:blue" if data["weight"] >= 0 else "tab:red")
        widths.append(0.5 + min(abs(data["weight"]), 4.0))
    nx.draw_networkx_edges(G, pos, edgelist=list(G.edges()), edge_color=edge_colors,
                           width=widths, arrows=False, ax=ax)

    labels = {n: f"{n}\n{G.nodes[n]['activation']:.2f}" for n in G.nodes()}
    nx.draw_networkx_labels(G, pos, labels=labels, font_size=7, ax=ax)

    if ax is None:
        plt.axis("off")
        plt.show()
