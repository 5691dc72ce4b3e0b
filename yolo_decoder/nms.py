from typing import Dict, List, Optional, Sequence

import numpy as np

from .errors import ConfigurationError
from .geometry import iou_one_to_many
from .types import Detection


def _greedy_keep(boxes: np.ndarray, iou_threshold: float, limit: Optional[int]) -> List[int]:
    """
    Greedy NMS over boxes already sorted by descending confidence.
    Returns positions (into `boxes`) of the boxes that survive.
    """

    active = np.ones(boxes.shape[0], dtype=bool)
    keep: List[int] = []

    for i in range(boxes.shape[0]):
        if not active[i]:
            continue
        keep.append(i)
        if limit is not None and len(keep) >= limit:
            break

        later = i + 1 + np.flatnonzero(active[i + 1 :])
        if later.size == 0:
            continue
        iou = iou_one_to_many(boxes[i], boxes[later])
        active[later[iou > iou_threshold]] = False

    return keep


def suppress(
    candidates: Sequence[Detection],
    iou_threshold: float,
    *,
    max_detections: Optional[int] = None,
    class_agnostic: bool = True,
) -> List[Detection]:
    """
    Non-Maximum Suppression.

    Candidates are stable-sorted by confidence (descending); each kept box
    removes every later box whose IoU with it is greater than `iou_threshold`.
    By default this runs across all classes, so a confident box of one class
    can suppress an overlapping box of another.

    With `class_agnostic=False` the same pass runs within each class and the
    survivors are merged back in descending-confidence order.
    """

    if not 0.0 <= iou_threshold <= 1.0:
        raise ConfigurationError(f"iou_threshold must be in [0, 1] (got {iou_threshold})")
    if max_detections is not None and max_detections < 1:
        raise ConfigurationError(f"max_detections must be >= 1 (got {max_detections})")
    if not candidates:
        return []

    # sorted() is stable: equal confidences keep anchor order
    ordered = sorted(candidates, key=lambda d: -d.confidence)
    boxes = np.array([d.bbox for d in ordered], dtype=np.float64)

    if class_agnostic:
        return [ordered[k] for k in _greedy_keep(boxes, iou_threshold, max_detections)]

    by_class: Dict[int, List[int]] = {}
    for pos, det in enumerate(ordered):
        by_class.setdefault(det.class_id, []).append(pos)

    kept: List[int] = []
    for positions in by_class.values():
        idx = np.array(positions, dtype=np.intp)
        kept.extend(int(idx[k]) for k in _greedy_keep(boxes[idx], iou_threshold, max_detections))

    # positions index the sorted list, so ascending position is descending confidence
    kept.sort()
    if max_detections is not None:
        kept = kept[:max_detections]
    return [ordered[k] for k in kept]
