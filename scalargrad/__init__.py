"""
scalargrad: scalar reverse-mode autodiff with a small neural network on top.

Builds a computation graph of scalar Values, propagates gradients through it
in reverse topological order, and trains feed-forward networks by gradient
descent on a cross-entropy loss.

Usage:
    import random
    from scalargrad.config import TrainingParam
    from scalargrad.core import NeuralNetwork, LayerParam, train, accuracy

    model = NeuralNetwork(2, [LayerParam(8, "tanh"), LayerParam(1, "sigmoid")],
                          rng=random.Random(7))
    result = train(model, inputs, labels, TrainingParam(epochs=50))
    print(accuracy(result.scores, labels, TrainingParam()))

The snapshot store and HTTP server need scalargrad.init(config) first.
"""

import logging
import threading

from scalargrad.config import ScalargradConfig

__version__ = "0.1.0"

_log = logging.getLogger(__name__)

_config: ScalargradConfig | None = None
_initialized: bool = False
_init_lock = threading.Lock()


def init(config: ScalargradConfig) -> None:
    """
    Install the library configuration and create the snapshot schema.

    Args:
        config: Database path and default seed
    """
    global _config, _initialized

    with _init_lock:
        _config = config
        _initialized = True

    from scalargrad.core.db import init_db
    init_db()
    _log.info("scalargrad initialized: db=%s", config.db_path)


def get_config() -> ScalargradConfig:
    """Get the current config. Raises if not initialized."""
    if not _initialized or _config is None:
        raise RuntimeError("scalargrad not initialized. Call scalargrad.init() first.")
    return _config
