"""CPU reference kernels for the activation layers.

Each forward kernel has the form `forw(x, y) -> y` and may be called with
`y is x`. Each backward kernel has the form `back(y, dy, dx) -> dx` (or
`back(x, dy, dx)` when it reads the input) and may be called with
`dx is dy`. Buffers only need to agree in element count.
"""

import numpy as np

from nnkern.core import check_similar, columns, flat
from nnkern.dispatch import register


def _same(*buffers):
    for b in buffers[1:]:
        check_similar(buffers[0], b)


# ----------------------
# Elementwise
# ----------------------
@register("sigmforw")
def sigmforw(x, y):
    """y = 1 / (1 + exp(-x))"""
    _same(x, y)
    fx, fy = flat(x), flat(y)
    with np.errstate(over="ignore"):
        np.negative(fx, out=fy)
        np.exp(fy, out=fy)
    fy += 1
    np.reciprocal(fy, out=fy)
    return y


@register("sigmback")
def sigmback(y, dy, dx):
    _same(y, dy, dx)
    fy = flat(y)
    np.multiply(flat(dy), fy * (1 - fy), out=flat(dx))
    return dx


@register("tanhforw")
def tanhforw(x, y):
    _same(x, y)
    np.tanh(flat(x), out=flat(y))
    return y


@register("tanhback")
def tanhback(y, dy, dx):
    _same(y, dy, dx)
    fy = flat(y)
    np.multiply(flat(dy), (1 + fy) * (1 - fy), out=flat(dx))
    return dx


@register("reluforw")
def reluforw(x, y):
    """y = x < 0 ? 0 : x"""
    _same(x, y)
    fx = flat(x)
    flat(y)[...] = np.where(fx < 0, 0, fx)
    return y


@register("reluback")
def reluback(y, dy, dx):
    """Pass dy through wherever the output was nonzero."""
    _same(y, dy, dx)
    flat(dx)[...] = np.where(flat(y) == 0, 0, flat(dy))
    return dx


# ----------------------
# Column-wise (softmax family)
# ----------------------
@register("softforw")
def softforw(x, y):
    """Per column: y = exp(x - max) / sum(exp(x - max))."""
    _same(x, y)
    if x.size == 0:
        return y
    X, Y = columns(x), columns(y, like=x)
    xmax = X.max(axis=1, keepdims=True)
    np.subtract(X, xmax, out=Y)
    np.exp(Y, out=Y)
    ysum = Y.sum(axis=1, keepdims=True, dtype=np.float64)
    Y /= ysum.astype(Y.dtype)
    return y


@register("softback")
def softback(y, dy, dx):
    """Per column: dx = y * (dy - sum(y * dy))."""
    _same(y, dy, dx)
    if dy.size == 0:
        return dx
    DY = columns(dy)
    Y, DX = columns(y, like=dy), columns(dx, like=dy)
    sumydy = (Y * DY).sum(axis=1, keepdims=True, dtype=np.float64).astype(DX.dtype)
    np.subtract(DY, sumydy, out=DX)
    DX *= Y
    return dx


@register("logpforw")
def logpforw(x, y):
    """Per column: y = (x - max) - log(sum(exp(x - max)))."""
    _same(x, y)
    if x.size == 0:
        return y
    X, Y = columns(x), columns(y, like=x)
    xmax = X.max(axis=1, keepdims=True)
    np.subtract(X, xmax, out=Y)
    expy = np.exp(Y).sum(axis=1, keepdims=True, dtype=np.float64)
    Y -= np.log(expy).astype(Y.dtype)
    return y


@register("logpback")
def logpback(y, dy, dx):
    """Identity: the loss layer downstream supplies the full gradient."""
    _same(dy, dx)
    if dx is not dy:
        flat(dx)[...] = flat(dy)
    return dx


# ----------------------
# Power-affine
# ----------------------
@register("axpb")
def axpb(x, y=None, a=1, p=1, b=0):
    """y = a * x**p + b elementwise; y defaults to x (in place)."""
    if y is None:
        y = x
    _same(x, y)
    T = x.dtype.type
    fy = flat(y)
    np.power(flat(x), T(p), out=fy)
    fy *= T(a)
    fy += T(b)
    return y


@register("axpbback")
def axpbback(x, dy, dx, a=1, p=1):
    """dx = dy * a * p * x**(p-1)."""
    _same(x, dy, dx)
    T = x.dtype.type
    grad = T(a * p) * np.power(flat(x), T(p - 1))
    np.multiply(flat(dy), grad, out=flat(dx))
    return dx
