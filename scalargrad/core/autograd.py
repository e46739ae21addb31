"""
Scalar autograd nodes and the operation library.

Every operation allocates a new Value wired to its operands and tagged with
an Op. Gradient rules live in one dispatch table keyed by that tag, so nodes
carry no closures. Arithmetic follows IEEE-754: log(0) is -inf, x/0 is inf,
and nothing raises on a non-finite result.
"""

import math
from enum import Enum

import numpy as np


class Op(Enum):
    LEAF = ""
    ADD = "+"
    MUL = "*"
    SUB = "-"
    POW = "**"
    LOG = "log"
    EXP = "exp"
    RELU = "ReLU"
    SIGMOID = "Sigmoid"
    TANH = "Tanh"


def _ieee(fn, *args) -> float:
    """Evaluate a numpy ufunc on floats with warnings silenced."""
    with np.errstate(all="ignore"):
        return float(fn(*args))


class Value:
    """Scalar value with automatic gradient computation."""

    __slots__ = ('data', 'grad', '_op', '_prev', '_exponent')

    def __init__(self, data, _children=(), _op=Op.LEAF, _exponent=None):
        self.data = float(data)
        self.grad = 0.0
        self._op = _op
        self._prev = tuple(_children)
        self._exponent = _exponent

    def __repr__(self):
        return f"Value(data={self.data:.4f}, grad={self.grad:.4f})"

    @property
    def op(self) -> Op:
        return self._op

    @property
    def children(self) -> tuple:
        return self._prev

    @property
    def exponent(self):
        return self._exponent

    @property
    def op_label(self) -> str:
        """Human-readable tag, with the exponent folded in for powers."""
        if self._op is Op.POW:
            return f"**{self._exponent:g}"
        return self._op.value

    def is_leaf(self) -> bool:
        return self._op is Op.LEAF

    # --- binary operations ---

    def __add__(self, other):
        other = other if isinstance(other, Value) else Value(other)
        return Value(self.data + other.data, (self, other), Op.ADD)

    def __radd__(self, other):
        return self + other

    def __mul__(self, other):
        other = other if isinstance(other, Value) else Value(other)
        return Value(self.data * other.data, (self, other), Op.MUL)

    def __rmul__(self, other):
        return self * other

    def __sub__(self, other):
        other = other if isinstance(other, Value) else Value(other)
        return Value(self.data - other.data, (self, other), Op.SUB)

    def __rsub__(self, other):
        return Value(other) - self

    def __neg__(self):
        return self * -1

    # Division is multiplication by a reciprocal power, not a quotient rule.
    def __truediv__(self, other):
        return self * (other ** -1)

    def __rtruediv__(self, other):
        return other * (self ** -1)

    def __pow__(self, other):
        assert isinstance(other, (int, float)), "only int/float powers supported"
        return Value(_ieee(np.power, self.data, other), (self,), Op.POW, _exponent=other)

    # --- unary operations ---

    def log(self):
        return Value(_ieee(np.log, self.data), (self,), Op.LOG)

    def exp(self):
        return Value(_ieee(np.exp, self.data), (self,), Op.EXP)

    def relu(self):
        return Value(self.data if self.data > 0 else 0.0, (self,), Op.RELU)

    def sigmoid(self):
        # Numerically stable sigmoid
        if self.data >= 0:
            s = 1.0 / (1.0 + math.exp(-self.data))
        else:
            e = math.exp(self.data)
            s = e / (1.0 + e)
        return Value(s, (self,), Op.SIGMOID)

    def tanh(self):
        return Value(math.tanh(self.data), (self,), Op.TANH)

    def backward(self):
        """Compute gradients via reverse-mode autodiff (backpropagation)."""
        from scalargrad.core.engine import backward_propagate
        backward_propagate(self)


# ============================================================================
# GRADIENT RULES
# ============================================================================
# Each rule reads out.grad and adds the local partials into its children.
# Children are read positionally, so `a + a` accumulates into `a` twice.

def _add_rule(out: Value):
    a, b = out._prev
    a.grad += out.grad
    b.grad += out.grad


def _mul_rule(out: Value):
    a, b = out._prev
    a.grad += b.data * out.grad
    b.grad += a.data * out.grad


def _sub_rule(out: Value):
    a, b = out._prev
    a.grad += out.grad
    b.grad -= out.grad


def _pow_rule(out: Value):
    (a,) = out._prev
    p = out._exponent
    a.grad += p * _ieee(np.power, a.data, p - 1) * out.grad


def _log_rule(out: Value):
    (a,) = out._prev
    a.grad += _ieee(np.reciprocal, a.data) * out.grad


def _exp_rule(out: Value):
    (a,) = out._prev
    a.grad += out.data * out.grad


def _relu_rule(out: Value):
    (a,) = out._prev
    a.grad += (1.0 if a.data > 0 else 0.0) * out.grad


def _sigmoid_rule(out: Value):
    (a,) = out._prev
    s = out.data
    a.grad += s * (1.0 - s) * out.grad


def _tanh_rule(out: Value):
    (a,) = out._prev
    t = out.data
    a.grad += (1.0 - t * t) * out.grad


_RULES = {
    Op.ADD: _add_rule,
    Op.MUL: _mul_rule,
    Op.SUB: _sub_rule,
    Op.POW: _pow_rule,
    Op.LOG: _log_rule,
    Op.EXP: _exp_rule,
    Op.RELU: _relu_rule,
    Op.SIGMOID: _sigmoid_rule,
    Op.TANH: _tanh_rule,
}


def propagate(node: Value) -> None:
    """Push node.grad into its children. Leaves have no rule and are skipped."""
    rule = _RULES.get(node._op)
    if rule is not None:
        rule(node)


# ============================================================================
# FUNCTIONAL FORMS
# ============================================================================

def relu(value: Value) -> Value:
    """Rectified linear unit: max(0, x), subgradient 0 at x == 0."""
    return value.relu()


def sigmoid(value: Value) -> Value:
    """Logistic function: 1 / (1 + exp(-x))."""
    return value.sigmoid()


def tanh(value: Value) -> Value:
    """Hyperbolic tangent: (exp(2x) - 1) / (exp(2x) + 1)."""
    return value.tanh()


def exp(value: Value) -> Value:
    return value.exp()


def log(value: Value) -> Value:
    return value.log()
