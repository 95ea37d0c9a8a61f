from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .nms import NMSConfig, nms
from .types import BoundingBox, TensorShape, TensorShapeError


@dataclass(frozen=True)
class DecoderConfig:
    """
    Thresholds and label policy for decoding one detector output.
    """

    # Exclusive: a candidate at exactly this confidence is dropped.
    conf_threshold: float = 0.7
    # Inclusive: pairs at exactly this IoU are suppressed.
    iou_threshold: float = 0.7
    unknown_label: str = "Unknown"
    # ONNX exports emit geometry in input pixels; TFLite exports are already normalized.
    coords_normalized: bool = True
    # (width, height) of the model input, required when coords_normalized is False.
    input_size: Optional[Tuple[int, int]] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if not self.coords_normalized:
            if self.input_size is None:
                raise ValueError("input_size is required when coords_normalized is False")
            if min(self.input_size) <= 0:
                raise ValueError(f"input_size must be positive, got {self.input_size}")


class OutputDecoder:
    """
    Turns a `[num_channel, num_elements]` detector output into NMS-filtered boxes.

    Layout (channel-major, one column per anchor):
    - rows 0..3: cx, cy, w, h
    - rows 4..:  one confidence row per class

    `decode` returns None when no candidate clears the confidence and range
    filters, and a non-empty list otherwise. A tensor that does not match the
    configured shape raises `TensorShapeError`.
    """

    def __init__(self, shape: TensorShape, labels: Sequence[str], cfg: DecoderConfig = DecoderConfig()):
        self.shape = shape
        self.labels = tuple(labels)
        self.cfg = cfg
        self._nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold)

    def decode(self, preds: np.ndarray) -> Optional[List[BoundingBox]]:
        candidates = self.candidates(preds)
        if not candidates:
            return None
        return nms(candidates, self._nms_cfg)

    def candidates(self, preds: np.ndarray) -> List[BoundingBox]:
        """
        Confidence- and range-filtered boxes in anchor order, before NMS.
        """

        p = self._as_matrix(preds)

        class_scores = p[4:, :]
        # NaN never wins the max scan
        class_scores = np.where(np.isnan(class_scores), np.float32(-np.inf), class_scores)
        # argmax keeps the first maximum, lowest class index wins ties
        class_ids = np.argmax(class_scores, axis=0)
        max_conf = class_scores[class_ids, np.arange(class_scores.shape[1])]

        keep = max_conf > np.float32(self.cfg.conf_threshold)
        if not keep.any():
            return []

        cx, cy, w, h = p[0:4, :]
        half = np.float32(2.0)
        x1 = cx - w / half
        y1 = cy - h / half
        x2 = cx + w / half
        y2 = cy + h / half

        # Out-of-range boxes are dropped, not clamped.
        for corner in (x1, y1, x2, y2):
            keep &= (corner >= 0) & (corner <= 1)

        boxes: List[BoundingBox] = []
        for c in np.flatnonzero(keep):
            cls_id = int(class_ids[c])
            boxes.append(
                BoundingBox(
                    x1=float(x1[c]),
                    y1=float(y1[c]),
                    x2=float(x2[c]),
                    y2=float(y2[c]),
                    cx=float(cx[c]),
                    cy=float(cy[c]),
                    w=float(w[c]),
                    h=float(h[c]),
                    cnf=float(max_conf[c]),
                    cls=cls_id,
                    cls_name=self.label_for(cls_id),
                )
            )
        return boxes

    def label_for(self, cls_id: int) -> str:
        # Unknown ids degrade to a placeholder label instead of failing.
        if 0 <= cls_id < len(self.labels):
            return self.labels[cls_id]
        return self.cfg.unknown_label

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _as_matrix(self, preds: np.ndarray) -> np.ndarray:
        p = np.asarray(preds, dtype=np.float32)
        if p.size != self.shape.size:
            raise TensorShapeError(
                f"Tensor has {p.size} values, expected {self.shape.num_channel} x {self.shape.num_elements}"
                f" = {self.shape.size} (got shape {p.shape})."
            )
        if p.ndim > 1 and p.shape[-2:] != (self.shape.num_channel, self.shape.num_elements):
            raise TensorShapeError(
                f"Tensor shape {p.shape} does not match [{self.shape.num_channel}, {self.shape.num_elements}]."
            )
        p = p.reshape(self.shape.num_channel, self.shape.num_elements)

        if not self.cfg.coords_normalized:
            in_w, in_h = self.cfg.input_size  # type: ignore[misc]
            p = p.copy()
            p[[0, 2], :] /= np.float32(in_w)
            p[[1, 3], :] /= np.float32(in_h)
        return p
