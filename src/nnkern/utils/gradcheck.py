"""Numerical gradient checks for activation and loss layers.

Central-difference gradients compared against the analytic backward pass
of a layer. Inputs are promoted to float64 so the comparison is limited by
the formulas and not by float32 rounding.
"""

from typing import Callable

import numpy as np

from nnkern.utils.logging import get_logger


def numerical_grad(f: Callable, x: np.ndarray, eps: float = 1e-4) -> np.ndarray:
    """
    Compute the numerical gradient of scalar function `f` at `x` using
    central differences. `x` is perturbed in place and restored.
    """
    grad = np.zeros_like(x)

    it = np.nditer(x, flags=["multi_index"], op_flags=["readwrite"])
    while not it.finished:
        idx = it.multi_index
        tmp = x[idx].copy()

        x[idx] = tmp + eps
        y1 = float(f(x))

        x[idx] = tmp - eps
        y2 = float(f(x))

        grad[idx] = (y1 - y2) / (2 * eps)

        x[idx] = tmp
        it.iternext()
    return grad


def array_allclose(a, b, rtol: float = 1e-4, atol: float = 1e-5) -> bool:
    """Compare two arrays for approximate equality."""
    return np.allclose(a, b, atol=atol, rtol=rtol)


def _report(name: str, num_grad: np.ndarray, bp_grad: np.ndarray) -> None:
    logger = get_logger()
    logger.warning(
        "gradient check failed for %s\n"
        " numerical: shape %s values %s ...\n"
        " backprop:  shape %s values %s ...",
        name,
        num_grad.shape,
        str(num_grad.flatten()[:10])[1:-1],
        bp_grad.shape,
        str(bp_grad.flatten()[:10])[1:-1],
    )


def check_activation_grad(
    layer, x, dy=None, rtol: float = 1e-4, atol: float = 1e-5
) -> bool:
    """
    Check layer.backward against the numerical gradient of sum(dy * f(x)).

    dy defaults to random weights so that column-normalized layers have a
    nonzero gradient. Returns True if the gradients match.
    """
    x = np.array(x, dtype=np.float64)
    if dy is None:
        dy = np.random.randn(*x.shape)
    dy = np.array(dy, dtype=np.float64)

    def f(xv):
        return np.sum(dy * layer.forward(xv, np.empty_like(xv)))

    num_grad = numerical_grad(f, x.copy())

    y = layer.forward(x, np.empty_like(x))
    bp_grad = layer.backward(dy.copy(), np.empty_like(x), x=x, y=y)

    ok = array_allclose(num_grad, bp_grad, rtol=rtol, atol=atol)
    if not ok:
        _report(repr(layer), num_grad, bp_grad)
    return ok


def check_loss_grad(
    loss_layer, y, z, before=None, rtol: float = 1e-4, atol: float = 1e-5
) -> bool:
    """
    Check loss_layer.backward against the numerical gradient of its loss.

    When `before` (an activation layer) is given, the loss is taken of
    before(y) and the gradient is carried back through before.backward, so
    the check is made at the activation's input.
    """
    y = np.array(y, dtype=np.float64)
    z = np.array(z, dtype=np.float64)

    def output(yv):
        if before is None:
            return yv
        return before.forward(yv, np.empty_like(yv))

    def f(yv):
        loss_layer.forward(output(yv))
        return loss_layer.loss(z)

    num_grad = numerical_grad(f, y.copy())

    out = output(y.copy())
    loss_layer.forward(out)
    bp_grad = loss_layer.backward(z.copy())
    if before is not None:
        bp_grad = before.backward(bp_grad, x=y, y=out)

    ok = array_allclose(num_grad, bp_grad, rtol=rtol, atol=atol)
    if not ok:
        name = repr(loss_layer) if before is None else f"{before!r} -> {loss_layer!r}"
        _report(name, num_grad, bp_grad)
    return ok

