from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


class TensorShapeError(ValueError):
    """
    Raised when the declared output shape is unusable or does not match the tensor.

    Kept distinct from "no detections" so a misconfigured model is never
    mistaken for an empty frame.
    """


@dataclass(frozen=True)
class TensorShape:
    """
    Logical `[num_channel, num_elements]` layout of a detector output.

    `num_channel = 4 + num_classes`: cx, cy, w, h rows followed by one
    confidence row per class.
    """

    num_channel: int
    num_elements: int

    def __post_init__(self) -> None:
        if self.num_channel <= 0 or self.num_elements <= 0:
            raise TensorShapeError(
                f"Invalid tensor shape: num_channel={self.num_channel}, num_elements={self.num_elements}"
            )
        if self.num_channel < 5:
            raise TensorShapeError(f"Expected 4 geometry channels + at least 1 class, got num_channel={self.num_channel}")

    @property
    def num_classes(self) -> int:
        return self.num_channel - 4

    @property
    def size(self) -> int:
        return self.num_channel * self.num_elements

    @classmethod
    def from_output_shape(cls, shape: Sequence[int]) -> "TensorShape":
        dims = [int(d) for d in shape]
        if len(dims) == 3:
            if dims[0] <= 0:
                raise TensorShapeError(f"Dynamic or zero batch dim is not supported (got shape {tuple(dims)}).")
            if dims[0] != 1:
                raise TensorShapeError(f"Batch > 1 is not supported (got shape {tuple(dims)}).")
            dims = dims[1:]
        if len(dims) != 2:
            raise TensorShapeError(f"Unsupported output shape: {tuple(dims)}")
        return cls(num_channel=dims[0], num_elements=dims[1])


@dataclass(frozen=True)
class BoundingBox:
    """
    One decoded detection in normalized image coordinates.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    cx: float
    cy: float
    w: float
    h: float
    cnf: float
    cls: int
    cls_name: str

    @property
    def area(self) -> float:
        return self.w * self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def to_pixels(self, width: int, height: int) -> Tuple[float, float, float, float]:
        return self.x1 * width, self.y1 * height, self.x2 * width, self.y2 * height
