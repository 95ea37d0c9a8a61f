from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def default_num_threads() -> int:
    # Leave one core for capture and drawing.
    return max(1, (os.cpu_count() or 1) - 1)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - num_threads: intra-op threads; None uses all cores but one
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    num_threads: Optional[int] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for a single-image detector.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the primary
    output, typically (1, 4 + C, A).
    """

    input_layout = "nchw"
    # YOLO ONNX exports emit cx, cy, w, h in input pixels
    coords_normalized = False

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        sess_opts.intra_op_num_threads = cfg.num_threads or default_num_threads()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session: Optional[Any] = ort.InferenceSession(
            str(self.model_path), sess_options=sess_opts, providers=providers
        )

        inp = self.session.get_inputs()[0]
        out = self.session.get_outputs()[0]
        self.input_name = cfg.input_name or inp.name
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or out.name
        self._input_shape = tuple(inp.shape)
        self._output_shape = tuple(out.shape)
        logger.info(
            "Loaded %s: input=%s output=%s threads=%d providers=%s",
            self.model_path.name,
            self._input_shape,
            self._output_shape,
            sess_opts.intra_op_num_threads,
            ",".join(self.session.get_providers()),
        )

    @property
    def input_size(self) -> Tuple[int, int]:
        # (1, 3, H, W) -> (W, H); dynamic dims come back as strings
        _, _, h, w = self._input_shape
        return _static_dim(w, "input width"), _static_dim(h, "input height")

    @property
    def output_shape(self) -> Tuple[int, ...]:
        dims = list(self._output_shape)
        # single-image inference: a dynamic leading batch dim runs as 1
        if len(dims) == 3 and not _is_static(dims[0]):
            dims[0] = 1
        return tuple(_static_dim(d, "output dim") for d in dims)

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("ONNX Runtime session is closed.")
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]

    def close(self) -> None:
        self.session = None


def _is_static(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and value > 0


def _static_dim(value: Any, what: str) -> int:
    if _is_static(value):
        return int(value)
    # Dynamic or symbolic dims cannot size the decoder; report as 0 for shape validation.
    logger.warning("Model %s is not static (%r)", what, value)
    return 0
