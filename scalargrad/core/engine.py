"""
Backward engine: topological ordering, gradient propagation, graph export.

This is the only module that walks the computation graph. Nodes are deduped
by object identity, never by value, so a node shared by several parents is
visited once but receives a contribution through every parent edge.
"""

import logging
from dataclasses import dataclass, field

from scalargrad.core.autograd import Value, propagate
from scalargrad.protocols import GraphRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphRecord:
    """Snapshot of one node for an external visualizer."""
    node_id: int
    data: float
    grad: float
    op: str
    child_ids: tuple[int, ...] = field(default_factory=tuple)


def topological_order(root: Value) -> list[Value]:
    """
    Return every node reachable from root, children before parents.

    Iterative post-order DFS: a node is emitted only after all of its
    children have been emitted. The explicit stack keeps long loss chains
    clear of the interpreter recursion limit.
    """
    topo = []
    visited = set()
    stack = [(root, False)]  # (node, expanded?)

    while stack:
        node, expanded = stack.pop()

        if expanded:
            topo.append(node)
            continue

        if id(node) in visited:
            continue
        visited.add(id(node))

        stack.append((node, True))
        for child in reversed(node._prev):
            if id(child) not in visited:
                stack.append((child, False))

    return topo


def backward_propagate(root: Value) -> None:
    """
    Accumulate d(root)/d(node) into every node reachable from root.

    Gradients are added, not assigned: calling this twice without a reset
    doubles them. Zero parameters first when a fresh step is wanted.
    """
    topo = topological_order(root)
    root.grad = 1.0
    for node in reversed(topo):
        propagate(node)
    logger.debug("[Backward] Propagated through %d nodes", len(topo))


def zero_grad(root: Value) -> None:
    """Zero the gradient of every node reachable from root."""
    for node in topological_order(root):
        node.grad = 0.0


def export_graph(root: Value) -> list[GraphRecord]:
    """
    Snapshot the graph under root as records in topological order.

    Ids are dense indices assigned per object identity, so two distinct
    leaves holding the same number get distinct ids.
    """
    topo = topological_order(root)
    ids = {id(node): i for i, node in enumerate(topo)}
    return [
        GraphRecord(
            node_id=ids[id(node)],
            data=node.data,
            grad=node.grad,
            op=node.op_label,
            child_ids=tuple(ids[id(child)] for child in node._prev),
        )
        for node in topo
    ]


def render_graph(root: Value, renderer: GraphRenderer, path: str) -> int:
    """Hand the exported graph to an external renderer. Returns node count."""
    records = export_graph(root)
    renderer.render(records, path)
    logger.info("[Graph] Rendered %d nodes to %s", len(records), path)
    return len(records)
