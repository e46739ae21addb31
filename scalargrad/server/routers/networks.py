"""Network endpoints: create, inspect, forward, train, export graph."""

import hmac
import logging
import math
import random
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field, field_validator, model_validator

from scalargrad.server.config import settings


def require_auth(x_scalargrad_key: Optional[str] = Header(None)) -> None:
    """Reject requests without the configured key. An empty key leaves the API open."""
    expected = settings.api_key
    if not expected:
        return
    if x_scalargrad_key is None:
        raise HTTPException(status_code=401, detail="Missing X-Scalargrad-Key header")
    if not hmac.compare_digest(x_scalargrad_key.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)


def _json_float(x: float) -> Optional[float]:
    """JSON has no NaN/inf; report non-finite numbers as null."""
    return x if math.isfinite(x) else None


def _json_weights(weights: list) -> list:
    return [
        [
            {
                "intercept": _json_float(n["intercept"]),
                "weights": [_json_float(w) for w in n["weights"]],
            }
            for n in layer
        ]
        for layer in weights
    ]


def _check_activation(v: Optional[str]) -> Optional[str]:
    from scalargrad.core.nn import get_activation
    get_activation(v)
    return v


def _load_or_404(network_id: str):
    from scalargrad.core.store import load_network

    try:
        return load_network(network_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Network {network_id} not found")


def _rng(seed: Optional[int]) -> random.Random:
    import scalargrad

    if seed is None:
        seed = scalargrad.get_config().seed
    return random.Random(seed)


# --- Request models ---

class LayerRequest(BaseModel):
    output_size: int = Field(..., ge=1, le=1000, description="Number of neurons")
    activation: Optional[str] = Field(None, max_length=20, description="relu, sigmoid, tanh, exp, or null")

    _validate_activation = field_validator("activation")(_check_activation)


class CreateNetworkRequest(BaseModel):
    input_size: int = Field(..., ge=1, le=1000)
    layers: list[LayerRequest] = Field(..., min_length=1, max_length=50)
    name: str = Field("", max_length=200)
    seed: Optional[int] = Field(None, description="Seed for weight initialization")


class ForwardRequest(BaseModel):
    inputs: list[list[float]] = Field(..., min_length=1)


class TrainRequest(BaseModel):
    inputs: list[list[float]] = Field(..., min_length=1)
    labels: list[list[float]] = Field(..., min_length=1)
    epochs: int = Field(100, ge=1)
    regularization: float = Field(0.0, ge=0.0)
    classification_threshold: float = Field(0.5)
    learning_rate: float = Field(0.9, gt=0.0)
    batch_size: Optional[int] = Field(None, ge=1, description="Sample this many records")
    seed: Optional[int] = Field(None, description="Seed for batch sampling")

    @model_validator(mode="after")
    def _check_lengths(self):
        if len(self.inputs) != len(self.labels):
            raise ValueError(
                f"inputs has {len(self.inputs)} records but labels has {len(self.labels)}"
            )
        return self


class GraphRequest(BaseModel):
    input: list[float] = Field(..., min_length=1)
    output_index: int = Field(0, ge=0)
    backward: bool = Field(True, description="Run backward from the output before export")


# --- Endpoints ---
# Routes use `def` (not `async def`) because training and graph building are
# synchronous. FastAPI runs `def` routes in a threadpool.

@router.post("")
def create_network(req: CreateNetworkRequest):
    """Build a randomly initialized network and store it."""
    from scalargrad.core.nn import LayerParam, NeuralNetwork
    from scalargrad.core.store import save_network

    params = [LayerParam(layer.output_size, layer.activation) for layer in req.layers]
    network = NeuralNetwork(req.input_size, params, rng=_rng(req.seed))
    network_id = save_network(network, name=req.name)
    return {
        "network_id": network_id,
        "parameter_count": len(network.parameters()),
        "architecture": network.architecture(),
    }


@router.get("")
def list_all(limit: int = 100):
    from scalargrad.core.store import list_networks

    results = list_networks(limit=min(max(limit, 1), 1000))
    return {"results": results, "count": len(results)}


@router.get("/{network_id}")
def get_network(network_id: str):
    """Network metadata, weights and training history."""
    from scalargrad.core.store import get_network_info, get_training_history

    info = get_network_info(network_id)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Network {network_id} not found")
    network = _load_or_404(network_id)
    info["weights"] = _json_weights(network.state_dict()["weights"])
    info["history"] = get_training_history(network_id)
    return info


@router.delete("/{network_id}")
def delete(network_id: str):
    from scalargrad.core.store import delete_network

    if not delete_network(network_id):
        raise HTTPException(status_code=404, detail=f"Network {network_id} not found")
    return {"deleted": network_id}


@router.post("/{network_id}/forward")
def forward(network_id: str, req: ForwardRequest):
    """Score each input record."""
    network = _load_or_404(network_id)
    try:
        scores = network.forward_batch(req.inputs)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"scores": [[_json_float(s.data) for s in row] for row in scores]}


@router.post("/{network_id}/train")
def train_network(network_id: str, req: TrainRequest):
    """Train in place, persist the new weights, report losses and accuracy."""
    from scalargrad.config import TrainingParam
    from scalargrad.core.store import record_training
    from scalargrad.core.training import accuracy, sample_batch, train

    if req.epochs > settings.max_epochs:
        raise HTTPException(status_code=422, detail=f"epochs exceeds limit of {settings.max_epochs}")
    if len(req.inputs) > settings.max_records:
        raise HTTPException(status_code=422, detail=f"record count exceeds limit of {settings.max_records}")

    network = _load_or_404(network_id)
    for row in req.labels:
        if len(row) != network.output_size:
            raise HTTPException(
                status_code=422,
                detail=f"Each label needs {network.output_size} values, got {len(row)}",
            )

    inputs, labels = req.inputs, req.labels
    if req.batch_size is not None:
        inputs, labels = sample_batch(inputs, labels, req.batch_size, _rng(req.seed))

    param = TrainingParam(
        epochs=req.epochs,
        regularization=req.regularization,
        classification_threshold=req.classification_threshold,
        learning_rate=req.learning_rate,
    )
    try:
        result = train(network, inputs, labels, param)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    record_training(network_id, network, result.losses)
    acc = accuracy(result.scores, labels, param)
    return {
        "network_id": network_id,
        "records": len(inputs),
        "epochs": len(result.losses),
        "losses": [_json_float(x) for x in result.losses],
        "final_loss": _json_float(result.final_loss),
        "accuracy": _json_float(acc),
    }


@router.post("/{network_id}/graph")
def export(network_id: str, req: GraphRequest):
    """Computation graph of one forward output, as node records."""
    from scalargrad.core.engine import export_graph

    network = _load_or_404(network_id)
    try:
        outputs = network.forward(req.input)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if req.output_index >= len(outputs):
        raise HTTPException(
            status_code=422,
            detail=f"output_index {req.output_index} out of range for {len(outputs)} outputs",
        )

    root = outputs[req.output_index]
    if req.backward:
        root.backward()

    nodes = []
    for record in export_graph(root):
        node = asdict(record)
        node["data"] = _json_float(record.data)
        node["grad"] = _json_float(record.grad)
        node["child_ids"] = list(record.child_ids)
        nodes.append(node)
    return {"root_id": nodes[-1]["node_id"], "nodes": nodes, "count": len(nodes)}
