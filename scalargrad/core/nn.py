"""
Feed-forward network composed from scalar autograd nodes.

Neuron, Layer and NeuralNetwork only build graphs in their forward pass.
Gradients come entirely from the nodes they wire together.
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from scalargrad.core.autograd import Value, exp, relu, sigmoid, tanh
from scalargrad.protocols import RandomSource

ACTIVATIONS: dict[str, Callable[[Value], Value]] = {
    "relu": relu,
    "sigmoid": sigmoid,
    "tanh": tanh,
    "exp": exp,
}


def get_activation(name: Optional[str]) -> Optional[Callable[[Value], Value]]:
    """Resolve an activation name. None means identity."""
    if name is None:
        return None
    fn = ACTIVATIONS.get(name.lower())
    if fn is None:
        raise ValueError(
            f"Unknown activation {name!r}. "
            f"Available: {', '.join(sorted(ACTIVATIONS))}"
        )
    return fn


def _as_values(inputs: Sequence) -> list[Value]:
    return [x if isinstance(x, Value) else Value(x) for x in inputs]


@dataclass(frozen=True)
class LayerParam:
    """Number of neurons in a layer and the activation applied to each."""
    output_size: int
    activation: Optional[str] = None


class Neuron:
    """intercept + w_1*x_1 + ... + w_n*x_n, with inputSize+1 parameters."""

    def __init__(self, input_size: int, rng: RandomSource):
        self.intercept = Value(rng.gauss(0.0, 1.0))
        self.weights = [Value(rng.gauss(0.0, 1.0)) for _ in range(input_size)]

    def forward(self, inputs: Sequence[Value]) -> Value:
        if len(inputs) != len(self.weights):
            raise ValueError(
                f"Neuron expects {len(self.weights)} inputs, got {len(inputs)}"
            )
        out = self.intercept
        for w, x in zip(self.weights, inputs):
            out = out + w * x
        return out

    def parameters(self) -> list[Value]:
        return [self.intercept] + self.weights

    def __repr__(self):
        return f"Neuron(num_inputs={len(self.weights)})"


class Layer:
    """Neurons sharing one input vector and one optional activation."""

    def __init__(self, input_size: int, param: LayerParam, rng: RandomSource):
        if param.output_size < 1:
            raise ValueError(f"Layer needs at least one neuron, got {param.output_size}")
        self.input_size = input_size
        self.activation_name = param.activation
        self.activation = get_activation(param.activation)
        self.neurons = [Neuron(input_size, rng) for _ in range(param.output_size)]

    @property
    def output_size(self) -> int:
        return len(self.neurons)

    def forward(self, inputs: Sequence[Value]) -> list[Value]:
        outputs = [neuron.forward(inputs) for neuron in self.neurons]
        if self.activation is not None:
            outputs = [self.activation(o) for o in outputs]
        return outputs

    def parameters(self) -> list[Value]:
        params = []
        for neuron in self.neurons:
            params.extend(neuron.parameters())
        return params

    def __repr__(self):
        kind = self.activation_name or "linear"
        return f"Layer({self.input_size}->{self.output_size}, {kind})"


class NeuralNetwork:
    """Stack of layers; layer i's output size is layer i+1's input size."""

    def __init__(
        self,
        input_size: int,
        layer_params: Sequence[LayerParam],
        rng: Optional[RandomSource] = None,
    ):
        if input_size < 1:
            raise ValueError(f"input_size must be positive, got {input_size}")
        if not layer_params:
            raise ValueError("NeuralNetwork needs at least one layer")

        rng = rng if rng is not None else random.Random()
        self.input_size = input_size
        self.layers = []
        for param in layer_params:
            layer = Layer(input_size, param, rng)
            self.layers.append(layer)
            input_size = layer.output_size

    @property
    def output_size(self) -> int:
        return self.layers[-1].output_size

    def forward(self, inputs: Sequence) -> list[Value]:
        """Forward pass for one record: inputs -> final layer outputs."""
        out = _as_values(inputs)
        for layer in self.layers:
            out = layer.forward(out)
        return out

    def forward_batch(self, inputs: Sequence[Sequence]) -> list[list[Value]]:
        """Scores for every record in a batch."""
        return [self.forward(x) for x in inputs]

    def parameters(self) -> list[Value]:
        """All trainable leaves, layer by layer, intercept before weights."""
        params = []
        for layer in self.layers:
            params.extend(layer.parameters())
        return params

    def reset_grad(self):
        for p in self.parameters():
            p.grad = 0.0

    def step(self, learning_rate: float):
        """One gradient-descent update, in place."""
        for p in self.parameters():
            p.data -= learning_rate * p.grad

    def architecture(self) -> dict:
        return {
            "input_size": self.input_size,
            "layers": [
                {"output_size": layer.output_size, "activation": layer.activation_name}
                for layer in self.layers
            ],
        }

    def state_dict(self) -> dict:
        """Serialize architecture and weights to a JSON-friendly dict."""
        return {
            **self.architecture(),
            "weights": [
                [
                    {"intercept": n.intercept.data, "weights": [w.data for w in n.weights]}
                    for n in layer.neurons
                ]
                for layer in self.layers
            ],
        }

    def load_state_dict(self, d: dict):
        """Load weights from dict. Shapes must match this network."""
        layers = d["weights"]
        if len(layers) != len(self.layers):
            raise ValueError(
                f"State has {len(layers)} layers, network has {len(self.layers)}"
            )
        for layer, neurons in zip(self.layers, layers):
            if len(neurons) != len(layer.neurons):
                raise ValueError(
                    f"State has {len(neurons)} neurons, layer has {len(layer.neurons)}"
                )
            for neuron, state in zip(layer.neurons, neurons):
                if len(state["weights"]) != len(neuron.weights):
                    raise ValueError(
                        f"State has {len(state['weights'])} weights, "
                        f"neuron has {len(neuron.weights)}"
                    )
                neuron.intercept.data = float(state["intercept"])
                for w, val in zip(neuron.weights, state["weights"]):
                    w.data = float(val)

    @classmethod
    def from_state_dict(cls, d: dict, rng: Optional[RandomSource] = None) -> "NeuralNetwork":
        params = [LayerParam(layer["output_size"], layer.get("activation")) for layer in d["layers"]]
        network = cls(d["input_size"], params, rng=rng)
        network.load_state_dict(d)
        return network

    def __repr__(self):
        return f"NeuralNetwork({self.input_size}, {self.layers})"
