"""
Network snapshot store: save, load, list and delete trained networks.

Snapshots hold plain floats only (architecture + weights JSON). Non-finite
weights are stored as null and come back as NaN. Loading rebuilds a fresh
graph of leaf parameters.
"""

import json
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional

from scalargrad.core.db import _db
from scalargrad.core.nn import NeuralNetwork

logger = logging.getLogger(__name__)


def _finite_or_none(x: Optional[float]) -> Optional[float]:
    if x is None or not math.isfinite(x):
        return None
    return x


def _dump_weights(weights: list) -> str:
    """Weights as strict JSON. Non-finite values are written as null."""
    return json.dumps(
        [
            [
                {
                    "intercept": _finite_or_none(n["intercept"]),
                    "weights": [_finite_or_none(w) for w in n["weights"]],
                }
                for n in layer
            ]
            for layer in weights
        ],
        allow_nan=False,
    )


def _load_weights(text: str) -> list:
    """Inverse of _dump_weights. A null weight reloads as NaN."""
    def restore(x):
        return math.nan if x is None else x

    return [
        [
            {"intercept": restore(n["intercept"]), "weights": [restore(w) for w in n["weights"]]}
            for n in layer
        ]
        for layer in json.loads(text)
    ]


def save_network(
    network: NeuralNetwork,
    network_id: Optional[str] = None,
    name: str = "",
) -> str:
    """
    Insert or overwrite a network snapshot.

    Returns:
        The network id (generated when not given)
    """
    network_id = network_id or f"net_{uuid.uuid4().hex[:12]}"
    state = network.state_dict()
    now = datetime.now(timezone.utc).isoformat()

    with _db() as db:
        db.execute(
            """INSERT INTO networks (id, name, architecture, weights, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   architecture = excluded.architecture,
                   weights = excluded.weights,
                   updated_at = excluded.updated_at""",
            (
                network_id,
                name,
                json.dumps(network.architecture()),
                _dump_weights(state["weights"]),
                now,
                now,
            ),
        )
        db.commit()

    logger.info(f"[Store] Saved {network_id} ({len(network.parameters())} parameters)")
    return network_id


def load_network(network_id: str) -> NeuralNetwork:
    """Rebuild a stored network. Raises KeyError if the id is unknown."""
    with _db() as db:
        row = db.execute(
            "SELECT architecture, weights FROM networks WHERE id = ?",
            (network_id,),
        ).fetchone()

    if row is None:
        raise KeyError(network_id)

    state = json.loads(row["architecture"])
    state["weights"] = _load_weights(row["weights"])
    return NeuralNetwork.from_state_dict(state)


def get_network_info(network_id: str) -> Optional[dict]:
    """Metadata for one stored network, or None."""
    with _db() as db:
        row = db.execute(
            """SELECT id, name, architecture, trained_epochs, last_loss,
                      created_at, updated_at
               FROM networks WHERE id = ?""",
            (network_id,),
        ).fetchone()

    if row is None:
        return None
    info = dict(row)
    info["architecture"] = json.loads(info["architecture"])
    return info


def list_networks(limit: int = 100) -> list[dict]:
    """Most recently updated networks first."""
    with _db() as db:
        rows = db.execute(
            """SELECT id, name, architecture, trained_epochs, last_loss,
                      created_at, updated_at
               FROM networks
               ORDER BY updated_at DESC
               LIMIT ?""",
            (limit,),
        ).fetchall()

    results = []
    for row in rows:
        info = dict(row)
        info["architecture"] = json.loads(info["architecture"])
        results.append(info)
    return results


def delete_network(network_id: str) -> bool:
    """Delete a snapshot and its training history. Returns False if absent."""
    with _db() as db:
        cursor = db.execute("DELETE FROM networks WHERE id = ?", (network_id,))
        db.commit()
        deleted = cursor.rowcount > 0

    if deleted:
        logger.info(f"[Store] Deleted {network_id}")
    return deleted


def record_training(network_id: str, network: NeuralNetwork, losses: list[float]) -> None:
    """
    Persist updated weights after a training run and append to its history.

    Non-finite losses are stored as NULL.
    """
    now = datetime.now(timezone.utc).isoformat()
    first_loss = _finite_or_none(losses[0]) if losses else None
    final_loss = _finite_or_none(losses[-1]) if losses else None

    with _db() as db:
        cursor = db.execute(
            """UPDATE networks
               SET weights = ?, trained_epochs = trained_epochs + ?,
                   last_loss = ?, updated_at = ?
               WHERE id = ?""",
            (
                _dump_weights(network.state_dict()["weights"]),
                len(losses),
                final_loss,
                now,
                network_id,
            ),
        )
        if cursor.rowcount == 0:
            raise KeyError(network_id)
        db.execute(
            """INSERT INTO training_runs (network_id, epochs, first_loss, final_loss, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (network_id, len(losses), first_loss, final_loss, now),
        )
        db.commit()

    logger.info(f"[Store] Recorded {len(losses)} epochs for {network_id}")


def get_training_history(network_id: str) -> list[dict]:
    with _db() as db:
        rows = db.execute(
            """SELECT epochs, first_loss, final_loss, created_at
               FROM training_runs
               WHERE network_id = ?
               ORDER BY id ASC""",
            (network_id,),
        ).fetchall()
    return [dict(row) for row in rows]
