"""
Decode single-image YOLO detector outputs into labeled boxes and draw them over frames.

The core (types, geometry, nms, decoder) only needs NumPy. OpenCV is used for
preprocessing and drawing, and inference runtimes live under `backends/`.
"""

from .types import BoundingBox, TensorShape, TensorShapeError
from .geometry import iou
from .nms import NMSConfig, nms
from .decoder import DecoderConfig, OutputDecoder
from .metadata import load_labels
from .config import DetectorProfile, load_detector_profile
from .preprocess import prepare_input
from .runtime import DetectionResult, DetectorListener, DetectorSession, setup_detector
from .visualize import color_for_class, draw_boxes

__all__ = [
    "BoundingBox",
    "TensorShape",
    "TensorShapeError",
    "iou",
    "NMSConfig",
    "nms",
    "DecoderConfig",
    "OutputDecoder",
    "load_labels",
    "DetectorProfile",
    "load_detector_profile",
    "prepare_input",
    "DetectionResult",
    "DetectorListener",
    "DetectorSession",
    "setup_detector",
    "color_for_class",
    "draw_boxes",
]
