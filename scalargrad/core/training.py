"""
Loss, training loop and accuracy for NeuralNetwork.

Each epoch: forward the whole batch, build the loss graph, zero the
parameter gradients, run one backward pass, take one gradient-descent step.
No early stopping; a run is exactly `epochs` long.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from scalargrad.config import TrainingParam
from scalargrad.core.autograd import Value
from scalargrad.core.nn import NeuralNetwork
from scalargrad.protocols import RandomSource

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Per-epoch loss values and the scores of the final epoch."""
    losses: list[float] = field(default_factory=list)
    scores: list[list[Value]] = field(default_factory=list)

    @property
    def final_loss(self) -> Optional[float]:
        return self.losses[-1] if self.losses else None


def _as_value(x) -> Value:
    return x if isinstance(x, Value) else Value(x)


def normalize(scores: list[Value]) -> None:
    """Softmax in place. Single-output records are left untouched."""
    if len(scores) < 2:
        return
    total = Value(0.0)
    for i in range(len(scores)):
        scores[i] = scores[i].exp()
        total = total + scores[i]
    for i in range(len(scores)):
        scores[i] = scores[i] / total


def cross_entropy_loss(
    network: NeuralNetwork,
    labels: Sequence[Sequence],
    scores: list[list[Value]],
    param: TrainingParam,
) -> Value:
    """
    Mean binary cross-entropy over the batch, plus an optional L2 penalty.

    Multi-output score rows are softmax-normalized in place first. The
    penalty is built from the parameter nodes so its gradient flows too.
    """
    if len(labels) != len(scores):
        raise ValueError(f"{len(labels)} label rows for {len(scores)} score rows")
    for i, (label_row, score_row) in enumerate(zip(labels, scores)):
        if len(label_row) != len(score_row):
            raise ValueError(
                f"Record {i} has {len(label_row)} labels but {len(score_row)} scores"
            )

    loss = Value(0.0)
    for label_row, score_row in zip(labels, scores):
        normalize(score_row)
        for label, score in zip(label_row, score_row):
            label = _as_value(label)
            pos = label * score.log()
            neg = (1 - label) * (1 - score).log()
            loss = loss - (pos + neg)
    loss = loss / Value(float(len(scores)))

    if param.regularization > 0.0:
        norm2 = Value(0.0)
        for p in network.parameters():
            norm2 = norm2 + p ** 2
        loss = loss + norm2 * Value(param.regularization)

    return loss


def train(
    network: NeuralNetwork,
    inputs: Sequence[Sequence],
    labels: Sequence[Sequence],
    param: TrainingParam,
) -> TrainingResult:
    """
    Train the network by gradient descent on the cross-entropy loss.

    Returns the loss of every epoch and the scores from the last forward
    pass (softmax-normalized where the loss normalized them).
    """
    if len(inputs) != len(labels):
        raise ValueError(f"inputs has {len(inputs)} records but labels has {len(labels)}")

    result = TrainingResult()

    for epoch in range(param.epochs):
        scores = network.forward_batch(inputs)
        loss = cross_entropy_loss(network, labels, scores, param)
        result.losses.append(loss.data)
        result.scores = scores

        network.reset_grad()
        loss.backward()
        network.step(param.learning_rate)

        if param.log_every and (epoch + 1) % param.log_every == 0:
            logger.info(f"[Train] epoch {epoch + 1}/{param.epochs} loss={loss.data:.4f}")

    if result.losses:
        logger.info(
            f"[Train] Finished: {len(inputs)} records, {len(result.losses)} epochs, "
            f"loss {result.losses[0]:.4f} -> {result.losses[-1]:.4f}"
        )
    else:
        logger.info("[Train] No epochs requested")

    return result


def accuracy(
    scores: Sequence[Sequence],
    labels: Sequence[Sequence],
    param: TrainingParam,
) -> float:
    """
    Fraction of records whose first score and label fall on the same side
    of the classification threshold. An empty batch gives NaN.
    """
    threshold = param.classification_threshold
    correct = 0
    for score_row, label_row in zip(scores, labels):
        score = _as_value(score_row[0]).data
        label = _as_value(label_row[0]).data
        if (label > threshold) == (score > threshold):
            correct += 1
    if not scores:
        return math.nan
    return correct / len(scores)


def sample_batch(
    inputs: Sequence,
    labels: Sequence,
    batch_size: int,
    rng: Optional[RandomSource] = None,
) -> tuple[list, list]:
    """Random permutation prefix of the records, capped at the record count."""
    if len(inputs) != len(labels):
        raise ValueError(
            f"Got {len(inputs)} input records but {len(labels)} label records"
        )
    rng = rng if rng is not None else random.Random()
    indices = rng.sample(range(len(inputs)), min(batch_size, len(inputs)))
    return [inputs[i] for i in indices], [labels[i] for i in indices]
