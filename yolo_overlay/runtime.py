from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from .config import DetectorProfile
from .decoder import OutputDecoder
from .metadata import load_labels
from .preprocess import prepare_input
from .types import BoundingBox, TensorShape, TensorShapeError


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


class InferenceBackend(Protocol):
    input_layout: str
    # False when the model emits cx, cy, w, h in input pixels
    coords_normalized: bool

    @property
    def input_size(self) -> Tuple[int, int]: ...

    @property
    def output_shape(self) -> Tuple[int, ...]: ...

    def infer(self, blob: np.ndarray) -> np.ndarray: ...

    def close(self) -> None: ...


class DetectorListener(Protocol):
    def on_empty_detect(self) -> None: ...

    def on_detect(self, boxes: List[BoundingBox], inference_ms: float) -> None: ...


@dataclass(frozen=True)
class DetectionResult:
    boxes: Optional[List[BoundingBox]]
    inference_ms: float

    @property
    def empty(self) -> bool:
        return self.boxes is None


class DetectorSession:
    """
    Ready-to-use detector: backend + output shape + labels + decoder.

    Only `setup_detector` builds one, so every session has a loaded model and
    a validated output shape. The backend is not reentrant; an overlapping
    `detect` call is rejected instead of queued, leaving the drop/queue policy
    to the caller's frame loop.
    """

    def __init__(self, backend: InferenceBackend, decoder: OutputDecoder, input_size: Tuple[int, int]):
        self._backend: Optional[InferenceBackend] = backend
        self.decoder = decoder
        self.input_size = input_size
        self._busy = threading.Lock()

    @property
    def shape(self) -> TensorShape:
        return self.decoder.shape

    @property
    def labels(self) -> Sequence[str]:
        return self.decoder.labels

    @property
    def closed(self) -> bool:
        return self._backend is None

    def detect(self, image_bgr: np.ndarray) -> DetectionResult:
        backend = self._backend
        if backend is None:
            raise RuntimeError("Detector session is closed.")
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("A detection is already in flight on this session.")
        try:
            t0 = time.perf_counter()
            blob = prepare_input(image_bgr, self.input_size, backend.input_layout)
            preds = backend.infer(blob)
            inference_ms = (time.perf_counter() - t0) * 1000.0
        finally:
            self._busy.release()

        return DetectionResult(boxes=self.decoder.decode(preds), inference_ms=inference_ms)

    def run(self, image_bgr: np.ndarray, listener: DetectorListener) -> DetectionResult:
        result = self.detect(image_bgr)
        if result.boxes is None:
            listener.on_empty_detect()
        else:
            listener.on_detect(result.boxes, result.inference_ms)
        return result

    def close(self) -> None:
        if self._backend is None:
            return
        logger.debug("Clearing inference backend resources.")
        self._backend.close()
        self._backend = None

    def __enter__(self) -> "DetectorSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def _open_backend(model_path: PathLike, backend: str, num_threads: Optional[int], onnx_providers: Optional[Sequence[str]]):
    chosen = backend.lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(
            model_path,
            OnnxRuntimeBackendConfig(providers=onnx_providers, num_threads=num_threads),
        )
    raise ValueError(f"Unsupported backend: {backend!r}")


def setup_detector(
    model: Union[PathLike, InferenceBackend],
    labels: Union[PathLike, Sequence[str]],
    *,
    profile: DetectorProfile = DetectorProfile(),
    backend: Optional[str] = None,
    onnx_providers: Optional[Sequence[str]] = None,
) -> DetectorSession:
    """
    Load the model and labels and return a ready session.

    Args:
        model: path to a model file, or an already opened backend object
        labels: path to labels.txt / metadata.yaml, or the label list itself
        profile: thresholds and runtime options
        backend: "onnxruntime", or None to infer from the model extension
    """

    if isinstance(model, (str, Path)):
        path = Path(model)
        chosen = backend
        if chosen is None:
            if path.suffix.lower() == ".onnx":
                chosen = "onnxruntime"
            else:
                raise ValueError(
                    f"Could not infer backend from extension '{path.suffix}'. Pass backend=... explicitly."
                )
        engine = _open_backend(path, chosen, profile.num_threads, onnx_providers)
    else:
        engine = model

    try:
        input_size = tuple(int(v) for v in engine.input_size)
        if len(input_size) != 2 or min(input_size) <= 0:
            raise TensorShapeError(f"Invalid model input size: {input_size}")
        shape = TensorShape.from_output_shape(engine.output_shape)

        label_list = list(labels) if not isinstance(labels, (str, Path)) else load_labels(labels)
        decoder_cfg = profile.decoder_config(
            input_size=input_size,
            backend_coords_normalized=bool(getattr(engine, "coords_normalized", True)),
        )
        decoder = OutputDecoder(shape, label_list, decoder_cfg)
    except Exception:
        engine.close()
        raise

    if len(label_list) != shape.num_classes:
        logger.warning(
            "Model has %d classes but %d labels were loaded; unmatched ids resolve to %r.",
            shape.num_classes,
            len(label_list),
            profile.unknown_label,
        )
    logger.info(
        "Detector ready: input %dx%d, %d channels x %d anchors, %d labels, %s geometry",
        input_size[0],
        input_size[1],
        shape.num_channel,
        shape.num_elements,
        len(label_list),
        "normalized" if decoder_cfg.coords_normalized else "pixel",
    )
    return DetectorSession(engine, decoder, input_size)  # type: ignore[arg-type]
