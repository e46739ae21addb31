"""
scalargrad quickstart: build a network, train it on a two-moons dataset,
report accuracy, and export the computation graph of one prediction.

The dataset is generated in-process, so nothing is read from disk.

    python examples/quickstart.py
"""

import logging
import math
import random

from scalargrad.config import TrainingParam
from scalargrad.core import LayerParam, NeuralNetwork, accuracy, export_graph, sample_batch, train


# -- Step 0: Make a two-moons dataset ---------------------------------------
# Two interleaving half circles with a little noise, labels 0 and 1.

def make_moons(n: int, noise: float, rng: random.Random):
    inputs, labels = [], []
    for i in range(n):
        t = math.pi * rng.random()
        if i % 2 == 0:
            x, y, label = math.cos(t), math.sin(t), 0.0
        else:
            x, y, label = 1.0 - math.cos(t), 0.5 - math.sin(t), 1.0
        inputs.append([x + rng.gauss(0, noise), y + rng.gauss(0, noise)])
        labels.append([label])
    return inputs, labels


logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")
rng = random.Random(1234)

all_inputs, all_labels = make_moons(200, 0.1, rng)

# Reduce the batch to speed things up: every epoch walks the whole graph.
inputs, labels = sample_batch(all_inputs, all_labels, 100, rng)


# -- Step 1: Build the network ---------------------------------------------

model = NeuralNetwork(
    2,
    [
        LayerParam(10, "tanh"),    # first hidden layer
        LayerParam(10, "tanh"),    # second hidden layer
        LayerParam(1, "sigmoid"),  # output layer
    ],
    rng=rng,
)
print(f"Network: {model} ({len(model.parameters())} parameters)\n")


# -- Step 2: Train -----------------------------------------------------------

param = TrainingParam(
    epochs=100,
    regularization=0.0,  # no regularization
    classification_threshold=0.5,
    learning_rate=0.9,
)
result = train(model, inputs, labels, param)

acc = accuracy(result.scores, labels, param)
print(f"\nLoss: {result.final_loss:.4f}, Accuracy: {100 * acc:.0f}%")


# -- Step 3: Inspect the graph of one prediction -------------------------------

score = model.forward([0.0, 0.5])[0]
score.backward()
records = export_graph(score)
print(f"\nPrediction for (0.0, 0.5): {score.data:.3f}")
print(f"Graph has {len(records)} nodes; last five:")
for record in records[-5:]:
    print(f"  #{record.node_id:<4} {record.op or 'leaf':8s} data={record.data:8.4f} "
          f"grad={record.grad:8.4f} children={list(record.child_ids)}")
