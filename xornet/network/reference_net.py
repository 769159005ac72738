from typing import Dict, Sequence, Tuple

import torch
import torch.nn as nn

from .network import Network


class ReferenceNet(nn.Module):
    def __init__(self, network: Network):
        """Mirror a Network as an autograd module (float64) with the same weight and bias values."""
        super().__init__()
        self.network = network

        # Node map
        self.node_index = {n.id: idx for idx, n in enumerate(network.neurons)}
        self.weight_ids = [w.id for w in network.weights]
        weight_position = {wid: i for i, wid in enumerate(self.weight_ids)}

        # Register weights and biases
        self.weights = nn.Parameter(torch.tensor([w.value for w in network.weights], dtype=torch.float64))
        self.biases = nn.Parameter(torch.tensor([n.bias for n in network.neurons], dtype=torch.float64))

        # Per layer edge index tensors: source position, target position, flat weight index
        self._layer_edges = []
        for layer in network.layers[1:]:
            src, dst, widx = [], [], []
            for neuron in layer.neurons:
                for weight in network.incoming(neuron.id):
                    source = network.get_neuron(weight.from_neuron_id)
                    src.append(source.position_in_layer)
                    dst.append(neuron.position_in_layer)
                    widx.append(weight_position[weight.id])
            bias_idx = [self.node_index[n.id] for n in layer.neurons]
            self._layer_edges.append(layer.index)
            self.register_buffer(f"src_{layer.index}", torch.tensor(src, dtype=torch.long))
            self.register_buffer(f"dst_{layer.index}", torch.tensor(dst, dtype=torch.long))
            self.register_buffer(f"widx_{layer.index}", torch.tensor(widx, dtype=torch.long))
            self.register_buffer(f"bias_{layer.index}", torch.tensor(bias_idx, dtype=torch.long))

    def forward(self, x):
        batch_size = x.size(0)
        values = x.to(torch.float64)

        for l in self._layer_edges:
            src = getattr(self, f"src_{l}")
            dst = getattr(self, f"dst_{l}")
            widx = getattr(self, f"widx_{l}")
            bias_idx = getattr(self, f"bias_{l}")

            contrib = values[:, src] * self.weights[widx]
            total = torch.zeros(batch_size, len(bias_idx), dtype=torch.float64, device=x.device)
            total = total.index_add(1, dst, contrib) + self.biases[bias_idx]
            values = torch.sigmoid(total)

        return values

    def gradients(self, inputs: Sequence[float], expected: Sequence[float]) -> Tuple[Dict[str, float], Dict[str, float]]:
        """
        Autograd gradients of 0.5 * sum((output - expected)^2) for one sample.

        Returns (weight id -> dL/dw, neuron id -> dL/db). Under this loss the
        bias gradient equals the neuron delta of the hand-written backward pass.
        """
        self.zero_grad()
        x = torch.tensor([list(inputs)], dtype=torch.float64)
        y = torch.tensor([list(expected)], dtype=torch.float64)
        loss = 0.5 * ((self(x) - y) ** 2).sum()
        loss.backward()

        weight_grads = {wid: self.weights.grad[i].item() for i, wid in enumerate(self.weight_ids)}
        bias_grads = {nid: self.biases.grad[idx].item() for nid, idx in self.node_index.items()}
        return weight_grads, bias_grads

    def export_to(self, network: Network = None) -> Network:
        """Copy the module's current parameter values back into the network, in place."""
        network = network or self.network
        with torch.no_grad():
            for i, wid in enumerate(self.weight_ids):
                network.get_weight(wid).value = self.weights[i].item()
            for nid, idx in self.node_index.items():
                neuron = network.get_neuron(nid)
                if neuron.layer_index > 0:
                    neuron.bias = self.biases[idx].item()
        return network
