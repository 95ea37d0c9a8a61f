from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolo_overlay import DecoderConfig, OutputDecoder, TensorShape


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_output(shape: TensorShape, positives: int, seed: int = 0) -> np.ndarray:
    """
    Random `[4 + C, A]` tensor with `positives` anchors carrying a confident class score.
    """

    rng = np.random.default_rng(seed)
    a = shape.num_elements
    out = np.zeros((shape.num_channel, a), dtype=np.float32)
    out[0:2, :] = rng.uniform(0.2, 0.8, size=(2, a))
    out[2:4, :] = rng.uniform(0.02, 0.3, size=(2, a))
    out[4:, :] = rng.uniform(0.0, 0.5, size=(shape.num_classes, a))

    hot = rng.choice(a, size=min(positives, a), replace=False)
    cls = rng.integers(0, shape.num_classes, size=hot.size)
    out[4 + cls, hot] = rng.uniform(0.71, 1.0, size=hot.size)
    return out


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode latency (candidate scan vs scan + NMS).")
    parser.add_argument("--classes", type=int, default=80, help="Number of classes.")
    parser.add_argument("--anchors", type=int, default=8400, help="Number of anchors (e.g. 8400 for 640x640).")
    parser.add_argument("--positives", type=int, default=50, help="Anchors above the confidence threshold.")
    parser.add_argument("--conf", type=float, default=0.7, help="Confidence threshold (exclusive).")
    parser.add_argument("--iou", type=float, default=0.7, help="IoU threshold for NMS (inclusive).")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    parser.add_argument("--repeats", type=int, default=200, help="Recorded iterations.")
    args = parser.parse_args()

    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.anchors < 1:
        raise ValueError("--anchors must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    shape = TensorShape(num_channel=4 + int(args.classes), num_elements=int(args.anchors))
    labels = [f"class_{i}" for i in range(shape.num_classes)]
    decoder = OutputDecoder(shape, labels, DecoderConfig(conf_threshold=args.conf, iou_threshold=args.iou))
    preds = synthetic_output(shape, int(args.positives))

    t_scan: List[float] = []
    t_full: List[float] = []
    kept = 0
    for i in range(int(args.warmup) + int(args.repeats)):
        t0 = time.perf_counter()
        _ = decoder.candidates(preds)
        t1 = time.perf_counter()
        boxes = decoder.decode(preds)
        t2 = time.perf_counter()

        if i < int(args.warmup):
            continue
        t_scan.append(t1 - t0)
        t_full.append(t2 - t1)
        kept = 0 if boxes is None else len(boxes)

    print(_format_summary("candidates", _summarize_ms(t_scan)))
    print(_format_summary("candidates_with_nms", _summarize_ms(t_full)))
    print(f"shape={shape.num_channel}x{shape.num_elements} kept={kept}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
