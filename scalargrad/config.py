"""
scalargrad configuration.

TrainingParam is fixed for one training run. ScalargradConfig holds the
library-wide settings installed by scalargrad.init().
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TrainingParam:
    """Parameters for one training run. Not validated; bad values diverge."""

    epochs: int = 100
    regularization: float = 0.0  # L2 coefficient, 0 disables
    classification_threshold: float = 0.5
    learning_rate: float = 0.9

    # Progress logging cadence (epochs between INFO lines, 0 = summary only)
    log_every: int = 10


@dataclass
class ScalargradConfig:
    """Configuration for the scalargrad library."""

    # Snapshot database
    db_path: Path

    # Seed for weight init and batch sampling when the caller passes no rng
    seed: Optional[int] = None
