"""CPU reference kernels for the loss layers.

`y` is the model output recorded by the loss layer's forward pass and `z`
is the desired output. `<name>loss(y, z)` returns the loss averaged over the
batch count N = ccount(z) and leaves both buffers untouched.
`<name>lossback(y, z)` overwrites z with dJ/dy and returns it.

Math for the cross entropy variants, with p the target distribution:

    soft:  J = -sum(p log y) / N, y normalized probabilities. Writing the
           normalization explicitly, dJ/dy = 1 - p/y, which through the
           softmax Jacobian gives y - p at the softmax input.
    logp:  J = -sum(p y) / N, y normalized log probabilities, so every
           log normalizer is 0 and dJ/dy = exp(y) - p.
    xent:  y unnormalized log probabilities, q = softmax(y),
           J = (sum_n logz[n] - sum(p y)) / N and dJ/dy = q - p.
"""

import numpy as np

from nnkern.core import ccount, check_similar, columns, flat
from nnkern.dispatch import register


# ----------------------
# Quadratic
# ----------------------
@register("quadloss")
def quadloss(y, z) -> float:
    """0.5 * sum((y - z)**2) / N"""
    check_similar(y, z)
    if z.size == 0:
        return 0.0
    d = flat(y) - flat(z)
    cost = np.sum(d * d, dtype=np.float64)
    return float(0.5 * cost / ccount(z))


@register("quadlossback")
def quadlossback(y, z):
    """z = (y - z) / N"""
    check_similar(y, z)
    if z.size == 0:
        return z
    fz = flat(z)
    np.subtract(flat(y), fz, out=fz)
    fz /= ccount(z)
    return z


# ----------------------
# Cross entropy after a softmax layer
# ----------------------
@register("softloss")
def softloss(y, z) -> float:
    """-sum(z * log(y)) / N"""
    check_similar(y, z)
    if z.size == 0:
        return 0.0
    cost = -np.sum(flat(z) * np.log(flat(y)), dtype=np.float64)
    return float(cost / ccount(z))


@register("softlossback")
def softlossback(y, z):
    """z = ((y - z) / y) / N"""
    check_similar(y, z)
    if z.size == 0:
        return z
    fy, fz = flat(y), flat(z)
    fz[...] = ((fy - fz) / fy) / ccount(z)
    return z


# ----------------------
# Cross entropy after a log-softmax layer
# ----------------------
@register("logploss")
def logploss(y, z) -> float:
    """-sum(z * y) / N"""
    check_similar(y, z)
    if z.size == 0:
        return 0.0
    cost = -np.sum(flat(z) * flat(y), dtype=np.float64)
    return float(cost / ccount(z))


@register("logplossback")
def logplossback(y, z):
    """z = (exp(y) - z) / N"""
    check_similar(y, z)
    if z.size == 0:
        return z
    fz = flat(z)
    fz[...] = (np.exp(flat(y)) - fz) / ccount(z)
    return z


# ----------------------
# Cross entropy on unnormalized log probabilities
# ----------------------
@register("xentloss")
def xentloss(y, z) -> float:
    """sum over columns of (logsumexp(y) - sum(z * y)) / N, max-subtracted."""
    check_similar(y, z)
    if z.size == 0:
        return 0.0
    Z = columns(z)
    Y = columns(y, like=z)
    ymax = Y.max(axis=1, keepdims=True)
    logz = np.log(np.exp(Y - ymax).sum(axis=1, dtype=np.float64))
    sumpy = (Z * Y).sum(axis=1, dtype=np.float64)
    cost = np.sum(logz + ymax[:, 0] - sumpy)
    return float(cost / Z.shape[0])


@register("xentlossback")
def xentlossback(y, z):
    """z = (softmax(y) - z) / N, softmax taken per column of y.

    y is left untouched; the normalized probabilities live in a scratch
    buffer.
    """
    check_similar(y, z)
    if z.size == 0:
        return z
    Z = columns(z)
    Y = columns(y, like=z)
    nx = Z.shape[0]
    q = Y - Y.max(axis=1, keepdims=True)
    np.exp(q, out=q)
    q /= q.sum(axis=1, keepdims=True, dtype=np.float64).astype(q.dtype)
    np.subtract(q, Z, out=Z)
    Z /= nx
    return z
