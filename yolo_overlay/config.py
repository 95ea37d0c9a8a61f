from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .decoder import DecoderConfig


@dataclass(frozen=True)
class DetectorProfile:
    schema_version: int = 1
    conf_threshold: float = 0.7
    iou_threshold: float = 0.7
    unknown_label: str = "Unknown"
    num_threads: Optional[int] = None
    # None defers to the backend (ONNX exports emit pixel geometry, TFLite normalized).
    coords_normalized: Optional[bool] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector profile schema_version must be 1")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")

    def decoder_config(
        self,
        input_size: Optional[Tuple[int, int]] = None,
        backend_coords_normalized: bool = True,
    ) -> DecoderConfig:
        coords_normalized = self.coords_normalized
        if coords_normalized is None:
            coords_normalized = backend_coords_normalized
        return DecoderConfig(
            conf_threshold=self.conf_threshold,
            iou_threshold=self.iou_threshold,
            unknown_label=self.unknown_label,
            coords_normalized=coords_normalized,
            input_size=input_size,
        )


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_detector_profile(path: Path) -> DetectorProfile:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "conf_threshold",
        "iou_threshold",
        "unknown_label",
        "num_threads",
        "coords_normalized",
        "notes",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    schema_version = _require_int(payload, "schema_version")
    conf_threshold = _optional_number(payload, "conf_threshold", 0.7)
    iou_threshold = _optional_number(payload, "iou_threshold", 0.7)

    unknown_label = payload.get("unknown_label", "Unknown")
    if not isinstance(unknown_label, str):
        raise ValueError("unknown_label must be a string")

    num_threads = payload.get("num_threads")
    if num_threads is not None and (isinstance(num_threads, bool) or not isinstance(num_threads, int)):
        raise ValueError("num_threads must be an integer if provided")

    coords_normalized = payload.get("coords_normalized")
    if coords_normalized is not None and not isinstance(coords_normalized, bool):
        raise ValueError("coords_normalized must be a boolean if provided")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string if provided")

    return DetectorProfile(
        schema_version=schema_version,
        conf_threshold=conf_threshold,
        iou_threshold=iou_threshold,
        unknown_label=unknown_label,
        num_threads=num_threads,
        coords_normalized=coords_normalized,
        notes=notes,
    )
