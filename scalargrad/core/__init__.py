from scalargrad.core.autograd import (
    Op,
    Value,
    relu,
    sigmoid,
    tanh,
    exp,
    log,
)
from scalargrad.core.engine import (
    GraphRecord,
    topological_order,
    backward_propagate,
    zero_grad,
    export_graph,
    render_graph,
)
from scalargrad.core.nn import (
    LayerParam,
    Neuron,
    Layer,
    NeuralNetwork,
)
from scalargrad.core.training import (
    TrainingResult,
    normalize,
    cross_entropy_loss,
    train,
    accuracy,
    sample_batch,
)
