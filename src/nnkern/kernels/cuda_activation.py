"""Device kernels for the activation layers (cupy).

Imported only when cupy is usable. Elementwise layers use
cupy.ElementwiseKernel writing straight into the caller's output buffer;
the softmax family uses cupy reductions over the column view. Every kernel
synchronizes before returning.
"""

from nnkern.core import check_similar, columns, flat
from nnkern.cuda import cp, synchronize
from nnkern.dispatch import register

_sigm_forw = cp.ElementwiseKernel("T x", "T y", "y = 1 / (1 + exp(-x))", "nnkern_sigm_forw")
_sigm_back = cp.ElementwiseKernel("T y, T dy", "T dx", "dx = dy * y * (1 - y)", "nnkern_sigm_back")
_tanh_forw = cp.ElementwiseKernel("T x", "T y", "y = tanh(x)", "nnkern_tanh_forw")
_tanh_back = cp.ElementwiseKernel(
    "T y, T dy", "T dx", "dx = dy * (1 + y) * (1 - y)", "nnkern_tanh_back"
)
_relu_forw = cp.ElementwiseKernel("T x", "T y", "y = x < (T)0 ? (T)0 : x", "nnkern_relu_forw")
_relu_back = cp.ElementwiseKernel(
    "T y, T dy", "T dx", "dx = y == (T)0 ? (T)0 : dy", "nnkern_relu_back"
)
_axpb = cp.ElementwiseKernel(
    "T x, T a, T p, T b", "T y", "y = a * pow(x, p) + b", "nnkern_axpb"
)
_axpb_back = cp.ElementwiseKernel(
    "T x, T dy, T a, T p", "T dx", "dx = dy * a * p * pow(x, p - (T)1)", "nnkern_axpb_back"
)


def _run(kernel, *buffers):
    for b in buffers[1:]:
        check_similar(buffers[0], b)
    kernel(*(flat(b) for b in buffers))
    synchronize()
    return buffers[-1]


@register("sigmforw", device="gpu")
def sigmforw(x, y):
    return _run(_sigm_forw, x, y)


@register("sigmback", device="gpu")
def sigmback(y, dy, dx):
    return _run(_sigm_back, y, dy, dx)


@register("tanhforw", device="gpu")
def tanhforw(x, y):
    return _run(_tanh_forw, x, y)


@register("tanhback", device="gpu")
def tanhback(y, dy, dx):
    return _run(_tanh_back, y, dy, dx)


@register("reluforw", device="gpu")
def reluforw(x, y):
    return _run(_relu_forw, x, y)


@register("reluback", device="gpu")
def reluback(y, dy, dx):
    return _run(_relu_back, y, dy, dx)


@register("axpb", device="gpu")
def axpb(x, y=None, a=1, p=1, b=0):
    if y is None:
        y = x
    check_similar(x, y)
    T = x.dtype.type
    _axpb(flat(x), T(a), T(p), T(b), flat(y))
    synchronize()
    return y


@register("axpbback", device="gpu")
def axpbback(x, dy, dx, a=1, p=1):
    check_similar(x, dy)
    check_similar(x, dx)
    T = x.dtype.type
    _axpb_back(flat(x), flat(dy), T(a), T(p), flat(dx))
    synchronize()
    return dx


@register("softforw", device="gpu")
def softforw(x, y):
    check_similar(x, y)
    if x.size == 0:
        return y
    X, Y = columns(x), columns(y, like=x)
    xmax = X.max(axis=1, keepdims=True)
    cp.subtract(X, xmax, out=Y)
    cp.exp(Y, out=Y)
    Y /= Y.sum(axis=1, keepdims=True)
    synchronize()
    return y


@register("softback", device="gpu")
def softback(y, dy, dx):
    check_similar(y, dy)
    check_similar(dy, dx)
    if dy.size == 0:
        return dx
    DY = columns(dy)
    Y, DX = columns(y, like=dy), columns(dx, like=dy)
    sumydy = (Y * DY).sum(axis=1, keepdims=True)
    cp.subtract(DY, sumydy, out=DX)
    DX *= Y
    synchronize()
    return dx


@register("logpforw", device="gpu")
def logpforw(x, y):
    check_similar(x, y)
    if x.size == 0:
        return y
    X, Y = columns(x), columns(y, like=x)
    xmax = X.max(axis=1, keepdims=True)
    cp.subtract(X, xmax, out=Y)
    Y -= cp.log(cp.exp(Y).sum(axis=1, keepdims=True))
    synchronize()
    return y


@register("logpback", device="gpu")
def logpback(y, dy, dx):
    check_similar(dy, dx)
    if dx is not dy:
        cp.copyto(flat(dx), flat(dy))
        synchronize()
    return dx
