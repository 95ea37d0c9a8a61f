from typing import Tuple

import numpy as np


def prepare_input(image_bgr: np.ndarray, input_size: Tuple[int, int], layout: str = "nchw") -> np.ndarray:
    """
    Stretch-resize a BGR frame to the model input and build a float32 batch of one.

    No letterbox: the model's normalized outputs are then fractions of the
    original frame and can be drawn directly over it.

    Args:
        image_bgr: (H, W, 3) uint8 frame as read by OpenCV.
        input_size: (width, height) of the model input.
        layout: "nchw" (ONNX exports) or "nhwc" (TFLite exports).
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for prepare_input(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    layout = layout.lower()
    if layout not in ("nchw", "nhwc"):
        raise ValueError(f"Unsupported input layout: {layout!r}")

    in_w, in_h = int(input_size[0]), int(input_size[1])
    if in_w <= 0 or in_h <= 0:
        raise ValueError(f"input_size must be positive, got {input_size}")

    h, w = image_bgr.shape[:2]
    img = image_bgr
    if (w, h) != (in_w, in_h):
        img = cv2.resize(img, (in_w, in_h), interpolation=cv2.INTER_NEAREST)

    # BGR -> RGB, (x - 0) / 255
    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    if layout == "nchw":
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob[None, ...])
