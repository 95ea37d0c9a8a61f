from __future__ import annotations

import numpy as np

from .types import BoundingBox


def box_row(box: BoundingBox) -> np.ndarray:
    """
    Pack a box as float32 `[x1, y1, x2, y2, area]` for the vectorized IoU.
    """

    return np.array([box.x1, box.y1, box.x2, box.y2, box.w * box.h], dtype=np.float32)


def iou_one_to_many(row: np.ndarray, rows: np.ndarray) -> np.ndarray:
    """
    IoU of one packed box against N packed boxes, shape (N,).

    Area comes from the stored w*h column, not from the corners. A zero
    denominator (two empty boxes) counts as no overlap.
    """

    rows = np.asarray(rows, dtype=np.float32).reshape(-1, 5)
    if rows.shape[0] == 0:
        return np.empty((0,), dtype=np.float32)

    xx1 = np.maximum(row[0], rows[:, 0])
    yy1 = np.maximum(row[1], rows[:, 1])
    xx2 = np.minimum(row[2], rows[:, 2])
    yy2 = np.minimum(row[3], rows[:, 3])

    zero = np.float32(0.0)
    inter = np.maximum(zero, xx2 - xx1) * np.maximum(zero, yy2 - yy1)
    union = row[4] + rows[:, 4] - inter

    out = np.zeros(rows.shape[0], dtype=np.float32)
    np.divide(inter, union, out=out, where=union > zero)
    return out


def iou(a: BoundingBox, b: BoundingBox) -> float:
    return float(iou_one_to_many(box_row(a), box_row(b)[None, :])[0])
