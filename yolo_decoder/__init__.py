"""
Post-processing for YOLOv8-style detection heads.

Turns a raw `[1, 4 + C, A]` output tensor into labeled, de-duplicated boxes in
original-image pixels: confidence filtering, letterbox inversion and NMS. The
core needs only NumPy; OpenCV (letterbox/drawing) and ONNX Runtime (inference)
are imported lazily.
"""

from .types import Box, Candidate, ClassLabel, Detection, PreprocessMeta
from .errors import ConfigurationError, ModelLoadError, YoloDecoderError
from .geometry import clamp_box, intersection_over_union, invert_letterbox
from .postprocess import decode, validate_output_dims
from .nms import suppress
from .config import DEFAULT_CLASS_NAMES, DetectorConfig, RunConfig, load_detector_config, load_run_config
from .pipeline import DetectionPipeline, detect
from .letterbox import letterbox, to_blob
from .metadata import class_labels_from_names, load_class_names
from .runtime import Detector, ModelSession, ModelState, find_project_root, load_detector, resolve_path
from .visualize import draw_detections, format_detection

__all__ = [
    "Box",
    "Candidate",
    "ClassLabel",
    "Detection",
    "PreprocessMeta",
    "ConfigurationError",
    "ModelLoadError",
    "YoloDecoderError",
    "clamp_box",
    "intersection_over_union",
    "invert_letterbox",
    "decode",
    "validate_output_dims",
    "suppress",
    "DEFAULT_CLASS_NAMES",
    "DetectorConfig",
    "RunConfig",
    "load_detector_config",
    "load_run_config",
    "DetectionPipeline",
    "detect",
    "letterbox",
    "to_blob",
    "class_labels_from_names",
    "load_class_names",
    "Detector",
    "ModelSession",
    "ModelState",
    "find_project_root",
    "load_detector",
    "resolve_path",
    "draw_detections",
    "format_detection",
]
