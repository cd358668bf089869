"""
Activation layers.

An activation layer is a small immutable object naming a forward and a
backward kernel. forward(x, y) fills y = f(x); backward(dy, dx, x=, y=)
fills dx from whichever of x (input) or y (output) the layer reads. The
framework hooks ninputs/infersize/overwrites/back_reads_x/back_reads_y tell
the caller which buffers to keep alive between the two passes.
"""

from typing import Dict, Optional, Tuple, Type

import nnkern.kernels  # noqa: F401  (registers the kernels)
from nnkern.core import check_similar
from nnkern.dispatch import dispatch
from nnkern.errors import MissingInputError


class Actf:
    """
    Base activation layer.

    Subclasses set `forw_kernel` and `back_kernel` to registered kernel
    names. By default backward reads the output y.
    """

    forw_kernel: str = ""
    back_kernel: str = ""

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self):
        return f"{type(self).__name__}()"

    def __eq__(self, other):
        return type(self) is type(other) and self._params() == other._params()

    def __hash__(self):
        return hash((type(self), self._params()))

    def _params(self) -> Tuple:
        return ()

    # framework hooks
    def ninputs(self) -> int:
        return 1

    def infersize(self, dims) -> Optional[Tuple]:
        """Return (input dims, output dims), or None while dims are unknown."""
        return None if dims is None else (dims, dims)

    def output_shape(self, dims):
        return dims

    def overwrites(self) -> bool:
        """Forward may write its output into the input buffer."""
        return True

    def back_reads_x(self) -> bool:
        return False

    def back_reads_y(self) -> bool:
        return True

    def forward(self, x, y=None):
        """Compute y = f(x) and return y. y defaults to x (in place)."""
        if y is None:
            y = x
        check_similar(x, y, type(self).__name__)
        return dispatch(self.forw_kernel, x, y)

    def backward(self, dy, dx=None, *, x=None, y=None):
        """Write the gradient w.r.t. the input into dx and return it.

        dx defaults to dy (in place). Passing dx=None does not skip the
        gradient as a "no input gradient needed" marker would; callers that
        need no input gradient should not call backward. y is the output of
        forward; layers with back_reads_x() need x, the input of forward,
        instead.
        """
        if dx is None:
            dx = dy
        if y is None:
            raise MissingInputError(f"{type(self).__name__} backward needs y")
        check_similar(y, dy, type(self).__name__)
        check_similar(dy, dx, type(self).__name__)
        return dispatch(self.back_kernel, y, dy, dx)


class Sigm(Actf):
    """Sigmoid: 1/(1+exp(-x))."""

    forw_kernel = "sigmforw"
    back_kernel = "sigmback"


class Tanh(Actf):
    """Hyperbolic tangent."""

    forw_kernel = "tanhforw"
    back_kernel = "tanhback"


class Relu(Actf):
    """Rectified linear unit: (x < 0 ? 0 : x)."""

    forw_kernel = "reluforw"
    back_kernel = "reluback"


class Soft(Actf):
    """Softmax over each column: exp(x[i,j]) / sum(exp(x[:,j]))."""

    forw_kernel = "softforw"
    back_kernel = "softback"


class Logp(Actf):
    """Log softmax over each column: x[i,j] - log(sum(exp(x[:,j]))).

    Backward copies dy to dx unchanged: pair it with LogpLoss, whose
    gradient already is the gradient at this layer's input.
    """

    forw_kernel = "logpforw"
    back_kernel = "logpback"

    def backward(self, dy, dx=None, *, x=None, y=None):
        if dx is None:
            dx = dy
        check_similar(dy, dx, "Logp")
        return dispatch(self.back_kernel, dy, dy, dx)


class Axpb(Actf):
    """
    Power-affine layer: y = a * x**p + b elementwise.

    Args:
      a: scale (default 1)
      p: exponent (default 1)
      b: bias (default 0)

    Backward reads the input x, not the output.
    """

    forw_kernel = "axpb"
    back_kernel = "axpbback"

    def __init__(self, a=1, p=1, b=0):
        object.__setattr__(self, "a", a)
        object.__setattr__(self, "p", p)
        object.__setattr__(self, "b", b)

    def __repr__(self):
        return f"Axpb(a={self.a}, p={self.p}, b={self.b})"

    def _params(self):
        return (self.a, self.p, self.b)

    def back_reads_x(self) -> bool:
        return True

    def back_reads_y(self) -> bool:
        return False

    def forward(self, x, y=None):
        if y is None:
            y = x
        check_similar(x, y, "Axpb")
        return dispatch("axpb", x, y, a=self.a, p=self.p, b=self.b)

    def backward(self, dy, dx=None, *, x=None, y=None):
        if dx is None:
            dx = dy
        if x is None:
            raise MissingInputError("Axpb backward needs x")
        check_similar(x, dy, "Axpb")
        check_similar(dy, dx, "Axpb")
        return dispatch("axpbback", x, dy, dx, a=self.a, p=self.p)


def sigm() -> Sigm:
    """Sigmoid activation layer."""
    return Sigm()


def tanh() -> Tanh:
    """Hyperbolic tangent activation layer."""
    return Tanh()


def relu() -> Relu:
    """ReLU activation layer."""
    return Relu()


def soft() -> Soft:
    """Softmax activation layer."""
    return Soft()


def logp() -> Logp:
    """Log softmax activation layer."""
    return Logp()


def axpb(a=1, p=1, b=0) -> Axpb:
    """Power-affine activation layer y = a * x**p + b."""
    return Axpb(a=a, p=p, b=b)


ACTIVATIONS: Dict[str, Type[Actf]] = {
    "sigm": Sigm,
    "tanh": Tanh,
    "relu": Relu,
    "soft": Soft,
    "logp": Logp,
    "axpb": Axpb,
}


def activation(name: str, **options) -> Actf:
    """Construct the activation layer registered under name."""
    try:
        cls = ACTIVATIONS[name]
    except KeyError:
        raise ValueError(
            f"unknown activation {name!r}; expected one of {sorted(ACTIVATIONS)}"
        ) from None
    return cls(**options)
