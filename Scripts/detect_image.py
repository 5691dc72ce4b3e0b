import argparse
import dataclasses
from pathlib import Path

import cv2

from yolo_decoder import (
    DetectorConfig,
    RunConfig,
    class_labels_from_names,
    draw_detections,
    format_detection,
    load_class_names,
    load_detector,
    load_run_config,
)
from yolo_decoder.log import setup_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect objects in an image with a YOLOv8-style ONNX model.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--model", default=None, help="Path to the ONNX model (default: models/best.onnx).")
    parser.add_argument("--config", default=None, help="Optional JSON run config (thresholds, classes, model_path).")
    parser.add_argument("--metadata", default=None, help="Class metadata yaml (names mapping); overrides the config.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--per-class-nms", action="store_true", help="Run NMS within each class only.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out", default=None, help="Optional output path to save the visualization.")
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    args = parser.parse_args()

    setup_logging(args.log_level)

    run_cfg = load_run_config(Path(args.config)) if args.config else RunConfig()
    overrides = {}
    if args.imgsz is not None:
        overrides["input_size"] = args.imgsz
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.per_class_nms:
        overrides["class_agnostic_nms"] = False
    if args.metadata:
        overrides["class_names"] = class_labels_from_names(load_class_names(args.metadata))
    config: DetectorConfig = dataclasses.replace(run_cfg.detector, **overrides)

    model_path = args.model or run_cfg.model_path or "models/best.onnx"

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    detector = load_detector(model_path, config, providers=onnx_providers)

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    detections = detector(img)
    if not detections:
        print("No objects detected.")
    for det in detections:
        print(format_detection(det))

    if args.out or args.show:
        vis = draw_detections(img, detections, show_score=True)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")
        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
