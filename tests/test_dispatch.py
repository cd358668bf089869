import logging
import unittest

import numpy as np

import nnkern
from nnkern import cuda
from nnkern.core import Config, ccount, columns, cpu_only, flat, size2, using_config
from nnkern.dispatch import dispatch, lookup, register, registered
from nnkern.errors import DimensionMismatch, NNKernError, NotImplementedForType
from nnkern.kernels import activation as K
from nnkern.utils.logging import get_logger, log_fallback


class TestShapes(unittest.TestCase):
    def test_size2(self):
        self.assertEqual(size2(np.zeros(5)), (5, 1))
        self.assertEqual(size2(np.zeros((4, 5))), (5, 4))
        self.assertEqual(size2(np.zeros((2, 3, 4))), (12, 2))
        self.assertEqual(size2(np.zeros(())), (1, 1))
        self.assertEqual(size2(np.zeros((0, 3))), (0, 0))

    def test_ccount(self):
        self.assertEqual(ccount(np.zeros(7)), 1)
        self.assertEqual(ccount(np.zeros((3, 7))), 3)

    def test_columns_share_memory(self):
        x = np.zeros((2, 3, 2))
        X = columns(x)
        self.assertEqual(X.shape, (2, 6))
        X[1, 5] = 1.0
        self.assertEqual(x[1, 2, 1], 1.0)
        self.assertEqual(columns(np.zeros(12), like=x).shape, (2, 6))

    def test_non_contiguous_rejected(self):
        x = np.zeros((4, 4))[:, ::2]
        with self.assertRaises(DimensionMismatch):
            flat(x)
        with self.assertRaises(DimensionMismatch):
            columns(x)
        with self.assertRaises(DimensionMismatch):
            nnkern.sigm().forward(x, np.zeros(8))


class TestDispatch(unittest.TestCase):
    def test_registered_types(self):
        keys = registered("softforw")
        self.assertIn(("cpu", np.dtype(np.float32)), keys)
        self.assertIn(("cpu", np.dtype(np.float64)), keys)
        if cuda.gpu_enable:
            self.assertIn(("gpu", np.dtype(np.float32)), keys)

    def test_lookup_host_buffers(self):
        fn, via_host = lookup("sigmforw", np.zeros(2), np.zeros(2))
        self.assertIs(fn, K.sigmforw)
        self.assertFalse(via_host)

    def test_unknown_kernel(self):
        with self.assertRaises(NotImplementedForType):
            dispatch("no_such_kernel", np.zeros(2))

    def test_unsupported_dtype(self):
        for dtype in [np.int32, np.int64, np.float16, np.complex128]:
            with self.subTest(dtype=dtype):
                x = np.zeros(3, dtype=dtype)
                with self.assertRaises(NotImplementedForType):
                    dispatch("tanhforw", x, x)

    def test_mixed_dtypes(self):
        with self.assertRaises(NotImplementedForType) as cm:
            dispatch("tanhforw", np.zeros(3, dtype=np.float32), np.zeros(3))
        self.assertIsInstance(cm.exception, NNKernError)
        self.assertIsInstance(cm.exception, NotImplementedError)

    def test_non_array_buffers(self):
        for buf in [[0.0, 1.0], (0.0, 1.0), 1.0, None]:
            with self.subTest(buffer=type(buf).__name__):
                with self.assertRaises(NotImplementedForType):
                    dispatch("sigmforw", buf, np.zeros(2))
                with self.assertRaises(NotImplementedForType):
                    nnkern.sigm().forward(buf, np.zeros(2))
        with self.assertRaises(NotImplementedForType):
            nnkern.sigm().forward([0.0, 1.0], [0.0, 0.0])
        with self.assertRaises(NotImplementedForType):
            nnkern.axpb(p=2).backward(np.ones(2), x=[1.0, 2.0])
        with self.assertRaises(NotImplementedForType):
            nnkern.logp().backward([1.0, 2.0])

    def test_register_custom_kernel(self):
        @register("test_scale", dtypes=(np.float64,))
        def scale(x, y, s=1.0):
            np.multiply(x, s, out=y)
            return y

        x = np.arange(3, dtype=np.float64)
        y = dispatch("test_scale", x, np.empty_like(x), s=2.0)
        np.testing.assert_array_equal(y, [0.0, 2.0, 4.0])
        self.assertEqual(registered("test_scale"), [("cpu", np.dtype(np.float64))])
        with self.assertRaises(NotImplementedForType):
            dispatch("test_scale", x.astype(np.float32), np.empty(3, dtype=np.float32))

    def test_register_unknown_device(self):
        with self.assertRaises(ValueError):
            register("test_tpu", device="tpu")

    def test_kernels_callable_directly(self):
        x = np.array([0.0, 1.0])
        y = K.axpb(x.copy(), a=3, b=1)
        np.testing.assert_array_equal(y, [1.0, 4.0])
        self.assertFalse(hasattr(K, "mul2"))
        self.assertEqual(registered("mul2"), [])


class TestConfig(unittest.TestCase):
    def test_using_config_restores(self):
        self.assertTrue(Config.enable_gpu)
        with cpu_only():
            self.assertFalse(Config.enable_gpu)
        self.assertTrue(Config.enable_gpu)
        with self.assertRaises(RuntimeError):
            with using_config("check_finite", True):
                self.assertTrue(Config.check_finite)
                raise RuntimeError("boom")
        self.assertFalse(Config.check_finite)

    def test_cpu_only_on_host_buffers(self):
        x = np.array([1.0, 2.0, 3.0])
        with cpu_only():
            y = nnkern.soft().forward(x, np.empty_like(x))
        self.assertAlmostEqual(y.sum(), 1.0)


class TestLogging(unittest.TestCase):
    def test_logger(self):
        logger = get_logger()
        self.assertEqual(logger.name, "nnkern")
        self.assertIs(get_logger(), logger)

    def test_logger_has_no_output_handler(self):
        logger = get_logger()
        for handler in logger.handlers:
            self.assertIsInstance(handler, logging.NullHandler)
        self.assertTrue(logger.propagate)

    def test_log_fallback_levels(self):
        get_logger()
        with self.assertLogs("nnkern", level="DEBUG") as cm:
            log_fallback("test_fallback_kernel", "no device kernel")
            log_fallback("test_fallback_kernel", "no device kernel")
        self.assertEqual([r.levelno for r in cm.records], [logging.WARNING, logging.DEBUG])
        self.assertIn("test_fallback_kernel", cm.output[0])

    def test_gradient_check_failure_is_logged(self):
        from nnkern.utils import check_activation_grad

        class Wrong(nnkern.Sigm):
            back_kernel = "tanhback"

        get_logger()
        with self.assertLogs("nnkern", level="WARNING"):
            self.assertFalse(check_activation_grad(Wrong(), np.array([0.3, -0.2])))
