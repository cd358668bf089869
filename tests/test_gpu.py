import unittest

import numpy as np

from nnkern import cuda
from nnkern import layers as L
from nnkern.core import cpu_only
from nnkern.dispatch import lookup
from nnkern.errors import NotImplementedForType


@unittest.skipUnless(cuda.gpu_enable, "cupy and a CUDA device are required for these tests")
class TestDeviceKernels(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.RandomState(4)

    def assert_close(self, a, b, rtol=1e-4, atol=1e-5):
        np.testing.assert_allclose(cuda.as_numpy(a), cuda.as_numpy(b), rtol=rtol, atol=atol)

    def test_device_kernel_selected(self):
        x = cuda.as_cupy(np.zeros(3))
        fn, via_host = lookup("softforw", x, x)
        self.assertFalse(via_host)
        self.assertEqual(fn.__module__, "nnkern.kernels.cuda_activation")

    def test_activations_match_cpu(self):
        for dtype in [np.float32, np.float64]:
            x = self.rng.randn(4, 5).astype(dtype)
            dy = self.rng.randn(4, 5).astype(dtype)
            for name in ["sigm", "tanh", "relu", "soft", "logp", "axpb"]:
                with self.subTest(op=name, dtype=dtype):
                    layer = L.axpb(a=2, p=2, b=1) if name == "axpb" else L.activation(name)
                    y = layer.forward(x, np.empty_like(x))
                    dx = layer.backward(dy.copy(), x=x, y=y)

                    gx = cuda.as_cupy(x)
                    gy = layer.forward(gx, cuda.as_cupy(np.empty_like(x)))
                    gdx = layer.backward(cuda.as_cupy(dy), x=gx, y=gy)
                    self.assertIsInstance(gy, cuda.cp.ndarray)
                    self.assert_close(gy, y)
                    self.assert_close(gdx, dx)

    def test_in_place_on_device(self):
        x = self.rng.randn(3, 4)
        gx = cuda.as_cupy(x)
        gy = L.soft().forward(gx)
        self.assertIs(gy, gx)
        self.assert_close(gy, L.soft().forward(x.copy()))

    def test_losses_match_cpu(self):
        y = self.rng.rand(3, 4) + 0.1
        y /= y.sum(axis=1, keepdims=True)
        z = self.rng.rand(3, 4)
        z /= z.sum(axis=1, keepdims=True)
        for name in ["quadloss", "softloss", "logploss", "xentloss"]:
            with self.subTest(loss=name):
                host = L.loss_layer(name)
                host.forward(y)
                dev = L.loss_layer(name)
                dev.forward(cuda.as_cupy(y))
                gz = cuda.as_cupy(z)
                self.assertAlmostEqual(dev.loss(gz), host.loss(z))
                g = dev.backward(gz)
                self.assertIs(g, gz)
                self.assert_close(g, host.backward(z.copy()))

    def test_cpu_only_fallback_writes_device_buffers(self):
        x = self.rng.randn(3, 4)
        expected = L.logp().forward(x, np.empty_like(x))
        gx = cuda.as_cupy(x)
        with cpu_only():
            fn, via_host = lookup("logpforw", gx, gx)
            self.assertTrue(via_host)
            gy = L.logp().forward(gx)
        self.assertIs(gy, gx)
        self.assert_close(gx, expected)

    def test_mixed_devices(self):
        with self.assertRaises(NotImplementedForType):
            L.sigm().forward(cuda.as_cupy(np.zeros(3)), np.zeros(3))
