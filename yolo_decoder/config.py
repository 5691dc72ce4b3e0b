from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError
from .metadata import class_labels_from_names, load_class_names
from .types import ClassLabel

# Classes of the bundled animal model, in training order.
DEFAULT_CLASS_NAMES: Tuple[ClassLabel, ...] = (
    ClassLabel(name="cane", display_name="ឆ្កែ", emoji="🐕"),
    ClassLabel(name="cavallo", display_name="សេះ", emoji="🐎"),
    ClassLabel(name="elefante", display_name="ដំរី", emoji="🐘"),
    ClassLabel(name="farfalla", display_name="មេអំបៅ", emoji="🦋"),
    ClassLabel(name="gallina", display_name="មាន់", emoji="🐔"),
)


def _coerce_labels(values: Sequence[Union[str, ClassLabel]]) -> Tuple[ClassLabel, ...]:
    labels = []
    for value in values:
        if isinstance(value, ClassLabel):
            labels.append(value)
        elif isinstance(value, str) and value.strip():
            labels.append(ClassLabel(name=value.strip()))
        else:
            raise ConfigurationError(f"Invalid class name entry: {value!r}")
    return tuple(labels)


@dataclass(frozen=True)
class DetectorConfig:
    """
    Read-only settings shared by every `detect` call.

    `class_names[class_id]` must line up with the model's class channels.
    """

    input_size: int = 640
    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_names: Tuple[ClassLabel, ...] = DEFAULT_CLASS_NAMES
    max_detections: Optional[int] = None
    # False runs NMS within each class instead of across all of them.
    class_agnostic_nms: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "class_names", _coerce_labels(self.class_names))

        if self.input_size < 32:
            raise ConfigurationError(f"input_size must be >= 32 (got {self.input_size})")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError(f"confidence_threshold must be in [0, 1] (got {self.confidence_threshold})")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ConfigurationError(f"iou_threshold must be in [0, 1] (got {self.iou_threshold})")
        if not self.class_names:
            raise ConfigurationError("class_names must not be empty")
        if self.max_detections is not None and self.max_detections < 1:
            raise ConfigurationError(f"max_detections must be >= 1 (got {self.max_detections})")

    @property
    def class_count(self) -> int:
        return len(self.class_names)


@dataclass(frozen=True)
class RunConfig:
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    model_path: Optional[Path] = None


_ALLOWED_KEYS = {
    "input_size",
    "confidence_threshold",
    "iou_threshold",
    "class_names",
    "metadata",
    "max_detections",
    "class_agnostic_nms",
    "model_path",
}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


def _parse_class_entry(entry: Any) -> ClassLabel:
    if isinstance(entry, str):
        return ClassLabel(name=entry)
    if isinstance(entry, dict):
        unknown = sorted(set(entry) - {"name", "display_name", "emoji"})
        if unknown:
            raise ConfigurationError(f"Unknown class entry keys: {unknown}")
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("class entry requires a non-empty 'name'")
        return ClassLabel(name=name.strip(), display_name=entry.get("display_name"), emoji=entry.get("emoji"))
    raise ConfigurationError(f"class_names entries must be strings or objects, got {entry!r}")


def _read_json_object(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Detector config must be a JSON object")
    return payload


def load_run_config(path: Path) -> RunConfig:
    """
    Load a JSON run config. Relative `metadata` and `model_path` entries are
    resolved against the config file's directory.
    """

    path = Path(path)
    payload = _read_json_object(path)

    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown detector config keys: {unknown}")
    if "class_names" in payload and "metadata" in payload:
        raise ConfigurationError("Use either 'class_names' or 'metadata', not both.")

    kwargs: Dict[str, Any] = {}
    if "input_size" in payload:
        kwargs["input_size"] = _require_int(payload, "input_size")
    for key in ("confidence_threshold", "iou_threshold"):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    if payload.get("max_detections") is not None:
        kwargs["max_detections"] = _require_int(payload, "max_detections")
    if "class_agnostic_nms" in payload:
        if not isinstance(payload["class_agnostic_nms"], bool):
            raise ConfigurationError("class_agnostic_nms must be a boolean")
        kwargs["class_agnostic_nms"] = payload["class_agnostic_nms"]

    if "class_names" in payload:
        entries = payload["class_names"]
        if not isinstance(entries, list):
            raise ConfigurationError("class_names must be a list")
        kwargs["class_names"] = tuple(_parse_class_entry(e) for e in entries)
    elif "metadata" in payload:
        meta_path = payload["metadata"]
        if not isinstance(meta_path, str) or not meta_path:
            raise ConfigurationError("metadata must be a non-empty path string")
        kwargs["class_names"] = class_labels_from_names(load_class_names(path.parent / meta_path))

    model_path = None
    if payload.get("model_path") is not None:
        if not isinstance(payload["model_path"], str):
            raise ConfigurationError("model_path must be a string")
        model_path = (path.parent / payload["model_path"]).resolve()

    return RunConfig(detector=DetectorConfig(**kwargs), model_path=model_path)


def load_detector_config(path: Path) -> DetectorConfig:
    return load_run_config(path).detector
