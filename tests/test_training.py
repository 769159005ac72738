"""
test_training.py
~~~~~~~~~~~~~~~~

Unit tests for forward propagation, backpropagation, weight updates, loss
computation and training steps. Backpropagation is cross-checked against
torch autograd through ReferenceNet.
"""

import random

import pytest
import torch

from xornet.errors import ShapeMismatchError
from xornet.network import create_network
from xornet.network.reference_net import ReferenceNet
from xornet.training import (
    XOR_DATA,
    TrainingSample,
    accuracy,
    backward_pass,
    compute_loss,
    forward_pass,
    get_training_data,
    predict,
    train_step,
    train_step_with_details,
    update_weights,
)


def snapshot(network):
    return (
        [w.value for w in network.weights],
        [n.bias for n in network.neurons],
    )


@pytest.mark.unit
class TestDataset:

    def test_xor_table(self):
        assert [(s.inputs, s.expected) for s in get_training_data()] == [
            ((0.0, 0.0), (0.0,)),
            ((0.0, 1.0), (1.0,)),
            ((1.0, 0.0), (1.0,)),
            ((1.0, 1.0), (0.0,)),
        ]

    def test_samples_are_immutable(self):
        with pytest.raises(AttributeError):
            XOR_DATA[0].inputs = (1.0, 1.0)


@pytest.mark.unit
class TestForwardPass:
    """Test forward propagation."""

    def test_sets_input_activations(self, xor_network):
        forward_pass(xor_network, [0.5, 0.8])
        inputs = xor_network.input_layer.neurons
        assert (inputs[0].activation, inputs[1].activation) == (0.5, 0.8)
        assert (inputs[0].pre_activation, inputs[1].pre_activation) == (0.5, 0.8)

    def test_returns_output_activations(self, deep_network):
        outputs = forward_pass(deep_network, [1, 0])
        assert len(outputs) == 1
        assert outputs == [n.activation for n in deep_network.output_layer.neurons]

    def test_activations_in_unit_interval(self, deep_network):
        forward_pass(deep_network, [1, 1])
        for layer in deep_network.layers[1:]:
            for neuron in layer.neurons:
                assert 0.0 < neuron.activation < 1.0

    def test_matches_hand_computation(self, xor_network):
        forward_pass(xor_network, [1, 0])
        for layer in xor_network.layers[1:]:
            for neuron in layer.neurons:
                expected = neuron.bias + sum(
                    xor_network.get_neuron(w.from_neuron_id).activation * w.value
                    for w in xor_network.incoming(neuron.id)
                )
                assert neuron.pre_activation == pytest.approx(expected)

    def test_is_deterministic(self, deep_network):
        assert forward_pass(deep_network, [0, 1]) == forward_pass(deep_network, [0, 1])

    def test_does_not_touch_parameters(self, deep_network):
        before = snapshot(deep_network)
        forward_pass(deep_network, [1, 1])
        assert snapshot(deep_network) == before

    @pytest.mark.parametrize("inputs", [[], [1], [1, 0, 1]])
    def test_input_length_mismatch(self, xor_network, inputs):
        with pytest.raises(ShapeMismatchError) as exc_info:
            forward_pass(xor_network, inputs)
        assert exc_info.value.expected == 2
        assert exc_info.value.got == len(inputs)

    def test_agrees_with_reference_net(self, deep_network):
        reference = ReferenceNet(deep_network)
        for sample in XOR_DATA:
            ours = forward_pass(deep_network, sample.inputs)
            theirs = reference(torch.tensor([list(sample.inputs)], dtype=torch.float64))
            assert ours[0] == pytest.approx(theirs[0, 0].item(), abs=1e-12)


@pytest.mark.unit
class TestBackwardPass:
    """Test backpropagation."""

    def test_output_delta(self, xor_network):
        forward_pass(xor_network, [1, 0])
        backward_pass(xor_network, [1])
        out = xor_network.output_layer.neurons[0]
        assert out.delta == pytest.approx((out.activation - 1) * out.activation * (1 - out.activation))

    def test_input_deltas_untouched(self, deep_network):
        forward_pass(deep_network, [1, 0])
        backward_pass(deep_network, [1])
        assert all(n.delta == 0.0 for n in deep_network.input_layer.neurons)

    def test_gradient_is_source_activation_times_target_delta(self, deep_network):
        forward_pass(deep_network, [0, 1])
        backward_pass(deep_network, [1])
        for weight in deep_network.weights:
            source = deep_network.get_neuron(weight.from_neuron_id)
            target = deep_network.get_neuron(weight.to_neuron_id)
            assert weight.gradient == pytest.approx(source.activation * target.delta)

    def test_input_zero_gives_zero_gradient(self, xor_network):
        forward_pass(xor_network, [0, 1])
        backward_pass(xor_network, [1])
        for weight in xor_network.outgoing("i0_0"):
            assert weight.gradient == 0.0

    def test_larger_error_gives_larger_delta(self, xor_network):
        output = forward_pass(xor_network, [0.5, 0.5])[0]
        backward_pass(xor_network, [output])
        small = abs(xor_network.output_layer.neurons[0].delta)
        backward_pass(xor_network, [1.0 if output < 0.5 else 0.0])
        large = abs(xor_network.output_layer.neurons[0].delta)
        assert large > small

    def test_expected_length_mismatch(self, xor_network):
        forward_pass(xor_network, [1, 0])
        with pytest.raises(ShapeMismatchError):
            backward_pass(xor_network, [1, 0])

    @pytest.mark.parametrize("architecture", [[2, 2, 1], [2, 4, 3, 2, 1], [3, 5, 2]])
    def test_matches_autograd(self, architecture):
        network = create_network(architecture, rng=random.Random(42))
        reference = ReferenceNet(network)
        inputs = [0.3, 0.9, 0.1][:architecture[0]]
        expected = [1.0, 0.0][:architecture[-1]]

        forward_pass(network, inputs)
        backward_pass(network, expected)
        weight_grads, bias_grads = reference.gradients(inputs, expected)

        for weight in network.weights:
            assert weight.gradient == pytest.approx(weight_grads[weight.id], abs=1e-10)
        for layer in network.layers[1:]:
            for neuron in layer.neurons:
                assert neuron.delta == pytest.approx(bias_grads[neuron.id], abs=1e-10)


@pytest.mark.unit
class TestUpdateWeights:
    """Test the gradient descent step."""

    def test_applies_gradient_descent(self, xor_network):
        forward_pass(xor_network, [1, 0])
        backward_pass(xor_network, [1])
        before = {w.id: (w.value, w.gradient) for w in xor_network.weights}
        biases = {n.id: (n.bias, n.delta) for n in xor_network.neurons}

        update_weights(xor_network, 0.5)

        for weight in xor_network.weights:
            value, gradient = before[weight.id]
            assert weight.value == pytest.approx(value - 0.5 * gradient)
        for layer in xor_network.layers[1:]:
            for neuron in layer.neurons:
                bias, delta = biases[neuron.id]
                assert neuron.bias == pytest.approx(bias - 0.5 * delta)

    def test_input_biases_stay_zero(self, deep_network):
        for sample in XOR_DATA:
            forward_pass(deep_network, sample.inputs)
            backward_pass(deep_network, sample.expected)
            update_weights(deep_network, 1.0)
        assert all(n.bias == 0.0 for n in deep_network.input_layer.neurons)

    def test_zero_learning_rate_is_noop(self, deep_network):
        before = snapshot(deep_network)
        train_step(deep_network, 0.0)
        assert snapshot(deep_network) == before

    def test_moves_output_toward_target(self, xor_network):
        output = forward_pass(xor_network, [1, 0])[0]
        backward_pass(xor_network, [1])
        assert xor_network.output_layer.neurons[0].delta < 0

        update_weights(xor_network, 0.01)
        new_output = forward_pass(xor_network, [1, 0])[0]
        assert abs(1 - new_output) < abs(1 - output)

    def test_moves_output_down_when_target_lower(self, xor_network):
        output = forward_pass(xor_network, [1, 1])[0]
        backward_pass(xor_network, [0])
        update_weights(xor_network, 0.01)
        assert forward_pass(xor_network, [1, 1])[0] < output

    def test_matches_torch_sgd(self):
        ours = create_network([2, 3, 1], rng=random.Random(3))
        mirror = create_network([2, 3, 1], rng=random.Random(3))
        reference = ReferenceNet(mirror)
        optimiser = torch.optim.SGD(reference.parameters(), lr=0.5)

        for sample in XOR_DATA:
            forward_pass(ours, sample.inputs)
            backward_pass(ours, sample.expected)
            update_weights(ours, 0.5)

            reference.gradients(sample.inputs, sample.expected)
            optimiser.step()

        reference.export_to()
        for a, b in zip(ours.weights, mirror.weights):
            assert a.value == pytest.approx(b.value, abs=1e-10)
        for a, b in zip(ours.neurons, mirror.neurons):
            assert a.bias == pytest.approx(b.bias, abs=1e-10)


@pytest.mark.unit
class TestLoss:
    """Test loss computation."""

    def test_non_negative(self, deep_network):
        assert compute_loss(deep_network) >= 0.0

    def test_is_mean_squared_error(self, xor_network):
        expected = sum(
            (forward_pass(xor_network, s.inputs)[0] - s.expected[0]) ** 2 for s in XOR_DATA
        ) / 4
        assert compute_loss(xor_network) == pytest.approx(expected)

    def test_custom_data(self, xor_network):
        data = [TrainingSample(inputs=(1.0, 0.0), expected=(1.0,))]
        output = forward_pass(xor_network, [1, 0])[0]
        assert compute_loss(xor_network, data) == pytest.approx((output - 1) ** 2)

    def test_plateau_value_when_outputs_are_half(self):
        network = create_network([2, 2, 1])
        for weight in network.weights:
            weight.value = 0.0
        for neuron in network.neurons:
            neuron.bias = 0.0
        assert compute_loss(network) == pytest.approx(0.25)

    def test_leaves_last_sample_activations(self, xor_network):
        compute_loss(xor_network)
        assert xor_network.input_layer.activations() == [1.0, 1.0]


@pytest.mark.unit
class TestTrainStep:
    """Test the composite training step."""

    def test_returns_mean_sample_loss(self, deep_network):
        result = train_step_with_details(deep_network, 0.5)
        assert len(result.sample_results) == 4
        assert result.loss == pytest.approx(sum(r.loss for r in result.sample_results) / 4)

    def test_sample_order_and_fields(self, xor_network):
        result = train_step_with_details(xor_network, 0.5)
        for i, r in enumerate(result.sample_results):
            assert r.sample_index == i
            assert r.sample is XOR_DATA[i]
            assert r.error == pytest.approx(r.output - r.sample.expected[0])
            assert r.loss == pytest.approx(r.error ** 2)

    def test_updates_after_each_sample(self, xor_network):
        """Online updates: the second sample sees weights already moved by the first."""
        outputs = []

        def record(result):
            outputs.append((result.sample_index, [w.value for w in xor_network.weights]))

        train_step_with_details(xor_network, 0.5, record)
        assert [i for i, _ in outputs] == [0, 1, 2, 3]
        assert outputs[0][1] != outputs[1][1]

    def test_callback_runs_before_update(self, xor_network):
        seen = []
        before = [w.value for w in xor_network.weights]
        train_step_with_details(xor_network, 0.5, lambda r: seen.append([w.value for w in xor_network.weights]))
        assert seen[0] == before

    def test_train_step_returns_loss(self, xor_network):
        clone = create_network([2, 2, 1])
        for a, b in zip(clone.weights, xor_network.weights):
            a.value = b.value
        for a, b in zip(clone.neurons, xor_network.neurons):
            a.bias = b.bias
        assert train_step(xor_network, 0.5) == pytest.approx(train_step_with_details(clone, 0.5).loss)

    def test_loss_comparable_to_compute_loss_at_zero_rate(self, deep_network):
        assert train_step(deep_network, 0.0) == pytest.approx(compute_loss(deep_network))


@pytest.mark.slow
class TestConvergence:
    """Statistical training properties. Bad seeds land on the 0.25 plateau, so retry."""

    def test_loss_improves_over_200_steps(self):
        improved = 0
        for seed in range(5):
            network = create_network([2, 4, 3, 2, 1], rng=random.Random(seed))
            start = compute_loss(network)
            for _ in range(200):
                train_step(network, 0.5)
            if compute_loss(network) < start:
                improved += 1
        assert improved >= 4

    def test_xor_converges(self):
        for seed in range(10):
            network = create_network([2, 2, 1], rng=random.Random(seed))
            for _ in range(10000):
                train_step(network, 0.5)
            predictions = [predict(network, s.inputs)[0] for s in XOR_DATA]
            if predictions == [0, 1, 1, 0]:
                assert accuracy(network) == 1.0
                assert compute_loss(network) < 0.1
                return
        pytest.fail("XOR did not converge for any of 10 seeds")
