import argparse
import dataclasses
import logging
from pathlib import Path
from typing import List

import cv2

from yolo_overlay import BoundingBox, draw_boxes, load_detector_profile, setup_detector
from yolo_overlay.config import DetectorProfile

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run_overlay")


class OverlayListener:
    """Keeps the latest result so the next frame is drawn with it."""

    def __init__(self) -> None:
        self.boxes: List[BoundingBox] = []
        self.inference_ms = 0.0

    def on_empty_detect(self) -> None:
        self.boxes = []

    def on_detect(self, boxes: List[BoundingBox], inference_ms: float) -> None:
        self.boxes = boxes
        self.inference_ms = inference_ms


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a YOLO detector on a live camera feed and draw boxes over it.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (default 0).")
    parser.add_argument("--model", default="Models/yolo11s.onnx", help="Path to a YOLO model (.onnx).")
    parser.add_argument("--labels", default="Models/labels.txt", help="labels.txt or metadata.yaml.")
    parser.add_argument("--profile", default=None, help="Optional detector profile JSON.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (exclusive). Overrides profile.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (inclusive). Overrides profile.")
    coords = parser.add_mutually_exclusive_group()
    coords.add_argument(
        "--pixel-coords", dest="coords_normalized", action="store_const", const=False, help="Model emits geometry in input pixels."
    )
    coords.add_argument(
        "--normalized-coords", dest="coords_normalized", action="store_const", const=True, help="Model emits geometry in [0, 1]."
    )
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--every", type=int, default=1, help="Run detection every Nth frame.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--out", default=None, help="Optional output video path.")
    parser.add_argument("--no-show", action="store_true", help="Do not open a preview window.")
    args = parser.parse_args()

    if args.every < 1:
        raise ValueError("--every must be >= 1")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    profile = load_detector_profile(Path(args.profile)) if args.profile else DetectorProfile()
    overrides = {}
    if args.conf is not None:
        overrides["conf_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    # Unset: the profile value, else the backend default (pixels for ONNX).
    if args.coords_normalized is not None:
        overrides["coords_normalized"] = args.coords_normalized
    if overrides:
        profile = dataclasses.replace(profile, **overrides)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    listener = OverlayListener()
    writer = None
    frame_idx = 0

    with setup_detector(args.model, args.labels, profile=profile, onnx_providers=onnx_providers) as session:
        try:
            while True:
                ok, frame = cap.read()
                if not ok or frame is None:
                    break
                frame_idx += 1

                # Frames are processed one at a time, so only one detection is ever in flight.
                if (frame_idx - 1) % args.every == 0:
                    result = session.run(frame, listener)
                    logger.debug(
                        "frame=%d boxes=%d inference=%.1fms",
                        frame_idx,
                        0 if result.empty else len(result.boxes),
                        result.inference_ms,
                    )

                vis = draw_boxes(frame, listener.boxes)
                cv2.putText(
                    vis,
                    f"{listener.inference_ms:.0f} ms",
                    (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.8,
                    (255, 255, 255),
                    2,
                    cv2.LINE_AA,
                )

                if args.out and writer is None:
                    fps = cap.get(cv2.CAP_PROP_FPS)
                    if fps is None or fps <= 0:
                        fps = 30.0
                    h, w = vis.shape[:2]
                    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                    writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                    if not writer.isOpened():
                        raise RuntimeError(f"Failed to open video writer: {args.out}")

                if writer is not None:
                    writer.write(vis)

                if not args.no_show:
                    cv2.imshow("detections", vis)
                    key = cv2.waitKey(1) & 0xFF
                    if key in (27, ord("q")):
                        break

                if args.max_frames and frame_idx >= args.max_frames:
                    break
        finally:
            cap.release()
            if writer is not None:
                writer.release()
            if not args.no_show:
                cv2.destroyAllWindows()

    logger.info("Processed %d frames", frame_idx)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
