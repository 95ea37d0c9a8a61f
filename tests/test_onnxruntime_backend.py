import unittest
from typing import Any, Dict, List, Tuple

import numpy as np

from yolo_overlay.backends.onnxruntime_backend import OnnxRuntimeBackend
from yolo_overlay.types import TensorShape


class FakeSession:
    def __init__(self) -> None:
        self.calls: List[Tuple[List[str], Dict[str, Any]]] = []

    def run(self, output_names: List[str], feeds: Dict[str, Any]) -> List[np.ndarray]:
        self.calls.append((output_names, feeds))
        return [np.zeros((1, 7, 2), dtype=np.float32)]


def _backend(input_shape: Tuple[Any, ...], output_shape: Tuple[Any, ...]) -> OnnxRuntimeBackend:
    # skip __init__ so no model file or onnxruntime install is needed
    backend = OnnxRuntimeBackend.__new__(OnnxRuntimeBackend)
    backend.session = FakeSession()
    backend.input_name = "images"
    backend.output_name = "output0"
    backend._input_shape = input_shape
    backend._output_shape = output_shape
    return backend


class TestOnnxRuntimeBackend(unittest.TestCase):
    def test_emits_pixel_geometry(self) -> None:
        self.assertFalse(OnnxRuntimeBackend.coords_normalized)

    def test_static_shapes(self) -> None:
        backend = _backend((1, 3, 480, 640), (1, 7, 2))
        self.assertEqual(backend.input_size, (640, 480))
        self.assertEqual(backend.output_shape, (1, 7, 2))

    def test_dynamic_batch_runs_as_single_image(self) -> None:
        for batch in ("batch", None, -1):
            with self.subTest(batch=batch):
                backend = _backend((batch, 3, 640, 640), (batch, 84, 8400))
                self.assertEqual(backend.output_shape, (1, 84, 8400))
                shape = TensorShape.from_output_shape(backend.output_shape)
                self.assertEqual(shape.num_classes, 80)

    def test_dynamic_anchor_dim_reports_zero(self) -> None:
        backend = _backend((1, 3, 640, 640), (1, 84, "anchors"))
        with self.assertLogs("yolo_overlay.backends.onnxruntime_backend", level="WARNING"):
            self.assertEqual(backend.output_shape, (1, 84, 0))

    def test_infer_feeds_the_input_name(self) -> None:
        backend = _backend((1, 3, 640, 640), (1, 7, 2))
        blob = np.zeros((1, 3, 640, 640), dtype=np.float32)
        out = backend.infer(blob)
        self.assertEqual(out.shape, (1, 7, 2))
        (names, feeds), = backend.session.calls
        self.assertEqual(names, ["output0"])
        self.assertEqual(list(feeds), ["images"])
        self.assertIs(feeds["images"], blob)

    def test_infer_after_close_raises(self) -> None:
        backend = _backend((1, 3, 640, 640), (1, 7, 2))
        backend.close()
        with self.assertRaises(RuntimeError):
            backend.infer(np.zeros((1, 3, 640, 640), dtype=np.float32))


if __name__ == "__main__":
    unittest.main()
