from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .geometry import box_row, iou_one_to_many
from .types import BoundingBox


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.7

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")


def nms(boxes: Sequence[BoundingBox], cfg: NMSConfig = NMSConfig()) -> List[BoundingBox]:
    """
    Greedy class-agnostic NMS over decoded boxes.

    Boxes are ordered by `cnf` at full precision (stable, so input order
    breaks ties), then each kept box marks every later box with
    IoU >= `cfg.iou_threshold` as suppressed. Boxes of different classes suppress each other too.
    Returns the kept boxes, highest confidence first.
    """

    if not boxes:
        return []

    order = sorted(range(len(boxes)), key=lambda i: -boxes[i].cnf)
    packed = np.stack([box_row(boxes[i]) for i in order])
    threshold = np.float32(cfg.iou_threshold)

    suppressed = np.zeros(len(order), dtype=bool)
    keep: List[BoundingBox] = []

    for pos in range(len(order)):
        if suppressed[pos]:
            continue
        keep.append(boxes[order[pos]])

        overlaps = iou_one_to_many(packed[pos], packed[pos + 1 :])
        suppressed[pos + 1 :] |= overlaps >= threshold

    return keep
