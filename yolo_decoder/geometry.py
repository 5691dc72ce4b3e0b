from typing import Sequence, Tuple, TypeVar, Union

import numpy as np

from .types import Box, PreprocessMeta

IOU_EPS = 1e-6

Coord = TypeVar("Coord", float, np.ndarray)


def intersection_over_union(a: Sequence[float], b: Sequence[float]) -> float:
    """
    IoU of two xyxy boxes.

    Degenerate boxes have zero intersection; the epsilon keeps two zero-area
    boxes from dividing by zero.
    """

    ax1, ay1, ax2, ay2 = a
    bx1, by1, bx2, by2 = b

    xa = max(ax1, bx1)
    ya = max(ay1, by1)
    xb = min(ax2, bx2)
    yb = min(ay2, by2)

    inter = max(0.0, xb - xa) * max(0.0, yb - ya)
    area_a = (ax2 - ax1) * (ay2 - ay1)
    area_b = (bx2 - bx1) * (by2 - by1)
    union = area_a + area_b - inter
    return float(inter / (union + IOU_EPS))


def iou_one_to_many(box: Union[Sequence[float], np.ndarray], boxes: np.ndarray) -> np.ndarray:
    """Vectorized `intersection_over_union(box, boxes[k])` for an (N, 4) array."""

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    x1, y1, x2, y2 = (float(v) for v in box)

    xx1 = np.maximum(x1, boxes[:, 0])
    yy1 = np.maximum(y1, boxes[:, 1])
    xx2 = np.minimum(x2, boxes[:, 2])
    yy2 = np.minimum(y2, boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area = (x2 - x1) * (y2 - y1)
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    return inter / (area + areas - inter + IOU_EPS)


def invert_letterbox(x: Coord, y: Coord, meta: PreprocessMeta) -> Tuple[Coord, Coord]:
    """Map model-space coordinates back to the original image (scalars or arrays)."""

    return (x - meta.offset_x) / meta.scale, (y - meta.offset_y) / meta.scale


def clamp_box(box: Sequence[float], width: float, height: float) -> Box:
    x1, y1, x2, y2 = box
    return (
        min(max(x1, 0.0), width),
        min(max(y1, 0.0), height),
        min(max(x2, 0.0), width),
        min(max(y2, 0.0), height),
    )


def clamp_boxes(boxes: np.ndarray, width: float, height: float) -> np.ndarray:
    """Clamp an (N, 4) xyxy array into the image in place and return it."""

    boxes[:, [0, 2]] = np.clip(boxes[:, [0, 2]], 0.0, width)
    boxes[:, [1, 3]] = np.clip(boxes[:, [1, 3]], 0.0, height)
    return boxes
