"""
Collaborator protocols for dependency injection.

scalargrad never draws pictures or reads files itself. Callers hand in a
random source for weight init and batch sampling, and a renderer when they
want the computation graph drawn.
"""

from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Source of randomness threaded through network construction and sampling.

    `random.Random(seed)` satisfies this protocol.
    """

    def gauss(self, mu: float, sigma: float) -> float:
        """Draw from a normal distribution."""
        ...

    def sample(self, population: Sequence, k: int) -> list:
        """Draw k distinct elements in random order."""
        ...


@runtime_checkable
class GraphRenderer(Protocol):
    """External visualizer for exported computation graphs."""

    def render(self, records: list, path: str) -> None:
        """
        Draw the graph and write it to path.

        Args:
            records: GraphRecord snapshots in topological order
            path: Destination file (format is the renderer's choice)
        """
        ...
