from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection

# RGB, indexed by class_id modulo length
PALETTE_RGB = (
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (255, 0, 255),
)


def color_for_class_id(class_id: int) -> Tuple[int, int, int]:
    """BGR color for a class id (OpenCV expects BGR)."""

    r, g, b = PALETTE_RGB[class_id % len(PALETTE_RGB)]
    return b, g, r


def detection_label(det: Detection, show_score: bool = True) -> str:
    name = det.label.label if det.label is not None else str(det.class_id)
    if show_score:
        return f"{name} {det.confidence * 100:.1f}%"
    return name


def format_detection(det: Detection) -> str:
    """One-line summary, e.g. `cane (ឆ្កែ) 91.2% [40.0, 40.0, 60.0, 60.0]`."""

    if det.label is None:
        name = str(det.class_id)
    elif det.label.display_name:
        name = f"{det.label.name} ({det.label.display_name})"
    else:
        name = det.label.name
    x1, y1, x2, y2 = det.bbox
    return f"{name} {det.confidence * 100:.1f}% [{x1:.1f}, {y1:.1f}, {x2:.1f}, {y2:.1f}]"


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = True,
    box_thickness: int = 4,
    font_scale: float = 0.6,
    font_thickness: int = 2,
) -> np.ndarray:
    """
    Draw boxes and labels on a copy of an OpenCV BGR image.

    OpenCV's Hershey fonts only cover ASCII, so non-ASCII display names (Khmer,
    emoji) fall back to the class `name`.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        color = color_for_class_id(det.class_id)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = detection_label(det, show_score=show_score)
        if not label.isascii():
            name = det.label.name if det.label is not None else str(det.class_id)
            label = f"{name} {det.confidence * 100:.1f}%" if show_score else name

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Label sits above the box, or inside it when there is no room.
        y_text_top = y1i - th - baseline - 8
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw + 16, w - 1)
        y_text_bottom = min(y_text_top + th + baseline + 8, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (min(x1i + 8, w - 1), min(y_text_top + th + 4, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
