from __future__ import annotations

import colorsys
from typing import Iterable, Tuple

import numpy as np

from .types import BoundingBox


def color_for_class(cls: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color for a class id (OpenCV expects BGR).

    Hues are spread in 14 degree steps, enough to tell ~26 classes apart.
    """

    hue = (int(cls) * (360 // 25)) % 360
    r, g, b = colorsys.hsv_to_rgb(hue / 360.0, 1.0, 1.0)
    return int(round(b * 255)), int(round(g * 255)), int(round(r * 255))


def format_label(box: BoundingBox) -> str:
    return f"{box.cls_name} {box.cnf * 100:.2f}%"


def draw_boxes(
    image_bgr: np.ndarray,
    boxes: Iterable[BoundingBox],
    *,
    box_thickness: int = 2,
    font_scale: float = 0.6,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw normalized boxes + "name conf%" labels on an OpenCV BGR image and return a copy.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_boxes(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for box in boxes:
        x1, y1, x2, y2 = box.to_pixels(w, h)
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        color = color_for_class(box.cls)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = format_label(box)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Label sits at the box's top-left corner, black background + white text.
        x_text_right = min(x1i + tw + 8, w - 1)
        y_text_bottom = min(y1i + th + baseline + 8, h - 1)

        cv2.rectangle(out, (x1i, y1i), (x_text_right, y_text_bottom), (0, 0, 0), thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i + 4, min(y1i + th + 4, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
