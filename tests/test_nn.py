"""
Tests for network composition: Neuron, Layer, NeuralNetwork.
"""

import random

import pytest

from scalargrad.core.autograd import Value, Op
from scalargrad.core.nn import Layer, LayerParam, NeuralNetwork, Neuron


def _set_all(network: NeuralNetwork, value: float):
    for p in network.parameters():
        p.data = value


class TestNeuron:
    def test_weighted_sum(self):
        neuron = Neuron(2, random.Random(0))
        neuron.intercept.data = 0.5
        neuron.weights[0].data = 2.0
        neuron.weights[1].data = -1.0
        out = neuron.forward([Value(2.0), Value(1.0)])
        assert out.data == 3.5
        out.backward()
        assert neuron.intercept.grad == 1.0
        assert neuron.weights[0].grad == 2.0
        assert neuron.weights[1].grad == 1.0

    def test_parameter_count(self):
        neuron = Neuron(4, random.Random(0))
        assert len(neuron.parameters()) == 5
        assert neuron.parameters()[0] is neuron.intercept

    def test_dimension_mismatch(self):
        neuron = Neuron(3, random.Random(0))
        with pytest.raises(ValueError, match="expects 3 inputs"):
            neuron.forward([Value(1.0), Value(2.0)])


class TestLayer:
    def test_output_per_neuron(self):
        layer = Layer(2, LayerParam(3, "tanh"), random.Random(1))
        out = layer.forward([Value(2.0), Value(1.0)])
        assert len(out) == 3
        assert all(o.op is Op.TANH for o in out)
        assert all(-1.0 < o.data < 1.0 for o in out)

    def test_no_activation_is_linear(self):
        layer = Layer(1, LayerParam(2), random.Random(1))
        out = layer.forward([Value(1.0)])
        assert all(o.op is Op.ADD for o in out)

    def test_relu_applied_uniformly(self):
        layer = Layer(1, LayerParam(2, "relu"), random.Random(1))
        for neuron in layer.neurons:
            neuron.intercept.data = -5.0
            neuron.weights[0].data = 1.0
        out = layer.forward([Value(1.0)])
        assert [o.data for o in out] == [0.0, 0.0]

    def test_unknown_activation(self):
        with pytest.raises(ValueError, match="Unknown activation"):
            Layer(2, LayerParam(1, "softplus"), random.Random(0))

    def test_empty_layer_rejected(self):
        with pytest.raises(ValueError):
            Layer(2, LayerParam(0), random.Random(0))


class TestNeuralNetwork:
    def test_parameter_count(self):
        model = NeuralNetwork(2, [LayerParam(3, "relu"), LayerParam(1, "sigmoid")], rng=random.Random(0))
        # 3 * (2 + 1) + 1 * (3 + 1)
        assert len(model.parameters()) == 13

    def test_layer_sizes_chain(self):
        model = NeuralNetwork(
            2,
            [LayerParam(10, "tanh"), LayerParam(10, "tanh"), LayerParam(1, "sigmoid")],
            rng=random.Random(0),
        )
        assert [layer.input_size for layer in model.layers] == [2, 10, 10]
        assert model.output_size == 1

    def test_forward(self):
        model = NeuralNetwork(2, [LayerParam(3, "relu"), LayerParam(1, "sigmoid")], rng=random.Random(0))
        out = model.forward([3.1, 1.2])
        assert len(out) == 1
        assert 0.0 <= out[0].data <= 1.0
        out[0].backward()
        assert any(p.grad != 0.0 for p in model.parameters())

    def test_forward_accepts_values(self):
        model = NeuralNetwork(2, [LayerParam(1)], rng=random.Random(0))
        x = [Value(1.0), Value(2.0)]
        out = model.forward(x)
        out[0].backward()
        neuron = model.layers[0].neurons[0]
        assert x[0].grad == neuron.weights[0].data
        assert x[1].grad == neuron.weights[1].data

    def test_input_dimension_mismatch(self):
        model = NeuralNetwork(2, [LayerParam(1)], rng=random.Random(0))
        with pytest.raises(ValueError):
            model.forward([1.0, 2.0, 3.0])

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            NeuralNetwork(0, [LayerParam(1)])
        with pytest.raises(ValueError):
            NeuralNetwork(2, [])

    def test_forward_is_idempotent(self):
        model = NeuralNetwork(2, [LayerParam(4, "tanh"), LayerParam(2)], rng=random.Random(3))
        first = [v.data for v in model.forward([0.3, -0.7])]
        second = [v.data for v in model.forward([0.3, -0.7])]
        assert first == second

    def test_seeded_init_is_reproducible(self):
        a = NeuralNetwork(2, [LayerParam(3, "tanh"), LayerParam(1)], rng=random.Random(42))
        b = NeuralNetwork(2, [LayerParam(3, "tanh"), LayerParam(1)], rng=random.Random(42))
        assert [p.data for p in a.parameters()] == [p.data for p in b.parameters()]

    def test_weights_shared_across_records(self):
        """Parameter gradients sum the contributions of every record."""
        model = NeuralNetwork(1, [LayerParam(1)], rng=random.Random(0))
        scores = model.forward_batch([[1.0], [3.0]])
        total = scores[0][0] + scores[1][0]
        total.backward()
        neuron = model.layers[0].neurons[0]
        assert neuron.intercept.grad == 2.0
        assert neuron.weights[0].grad == 4.0

    def test_reset_grad(self):
        model = NeuralNetwork(2, [LayerParam(3, "tanh"), LayerParam(1, "sigmoid")], rng=random.Random(0))
        model.forward([1.0, -1.0])[0].backward()
        model.reset_grad()
        assert all(p.grad == 0.0 for p in model.parameters())

    def test_step(self):
        model = NeuralNetwork(1, [LayerParam(1)], rng=random.Random(0))
        _set_all(model, 1.0)
        model.forward([2.0])[0].backward()
        model.step(0.1)
        neuron = model.layers[0].neurons[0]
        assert abs(neuron.intercept.data - 0.9) < 1e-12
        assert abs(neuron.weights[0].data - 0.8) < 1e-12


class TestStateDict:
    def test_roundtrip(self):
        model = NeuralNetwork(2, [LayerParam(3, "relu"), LayerParam(1, "sigmoid")], rng=random.Random(5))
        state = model.state_dict()

        model2 = NeuralNetwork(2, [LayerParam(3, "relu"), LayerParam(1, "sigmoid")], rng=random.Random(6))
        model2.load_state_dict(state)

        for p1, p2 in zip(model.parameters(), model2.parameters()):
            assert p1.data == p2.data

    def test_from_state_dict(self):
        model = NeuralNetwork(3, [LayerParam(2, "tanh"), LayerParam(2)], rng=random.Random(5))
        rebuilt = NeuralNetwork.from_state_dict(model.state_dict())
        assert rebuilt.architecture() == model.architecture()
        x = [0.1, 0.2, 0.3]
        assert [v.data for v in rebuilt.forward(x)] == [v.data for v in model.forward(x)]

    def test_shape_mismatch(self):
        model = NeuralNetwork(2, [LayerParam(3)], rng=random.Random(5))
        other = NeuralNetwork(2, [LayerParam(4)], rng=random.Random(5))
        with pytest.raises(ValueError):
            other.load_state_dict(model.state_dict())
