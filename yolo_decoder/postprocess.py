from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import ConfigurationError
from .geometry import clamp_boxes, invert_letterbox
from .types import Detection, PreprocessMeta

RawOutput = Union[np.ndarray, Sequence[float]]


def validate_output_dims(dims: Sequence[int], class_count: int) -> Tuple[int, int, int]:
    """
    Check a `[batch, channels, anchors]` output shape against the class list.

    Returns the dims as ints. Raises ConfigurationError if the layout is not
    `[1, 4 + class_count, anchors]`.
    """

    if class_count < 1:
        raise ConfigurationError(f"class_count must be >= 1 (got {class_count})")
    if len(dims) != 3:
        raise ConfigurationError(f"Expected output dims [batch, channels, anchors], got {list(dims)}")

    batch, channels, num_anchors = (int(d) for d in dims)
    if batch != 1:
        raise ConfigurationError(f"Batch > 1 is not supported (got dims {list(dims)}). Pass one image at a time.")
    if channels != 4 + class_count:
        raise ConfigurationError(
            f"Output has {channels} channels but {class_count} classes are configured "
            f"(expected {4 + class_count} = 4 box + {class_count} class channels)."
        )
    if num_anchors < 0:
        raise ConfigurationError(f"Anchor count must be >= 0 (got {num_anchors})")
    return batch, channels, num_anchors


def decode(
    raw: RawOutput,
    dims: Optional[Sequence[int]],
    class_count: int,
    confidence_threshold: float,
    meta: PreprocessMeta,
    img_width: float,
    img_height: float,
) -> List[Detection]:
    """
    Turn a channel-major YOLO output into candidates in original-image pixels.

    Layout: `[1, 4 + C, A]`, value for channel c / anchor i at flat index
    `c * A + i`. Channels 0-3 are cx, cy, w, h in model space, the rest are
    per-class scores.

    An anchor is kept only if its best class score is strictly greater than
    `confidence_threshold`. Candidates come back in anchor order, unsorted.

    Args:
        raw: flat buffer or array holding the output tensor
        dims: `[batch, channels, anchors]`; None takes the shape of a 3-D `raw`
        class_count: number of configured classes
        confidence_threshold: strict lower bound on the best class score
        meta: letterbox parameters used to build the input
        img_width, img_height: original image size, used for clamping
    """

    p = np.asarray(raw, dtype=np.float64)
    if dims is None:
        if p.ndim != 3:
            raise ConfigurationError(f"dims must be given for a {p.ndim}-D output buffer")
        dims = p.shape

    _, channels, num_anchors = validate_output_dims(dims, class_count)
    if p.size != channels * num_anchors:
        raise ConfigurationError(
            f"Output buffer has {p.size} values, dims {list(dims)} require {channels * num_anchors}."
        )
    if num_anchors == 0:
        return []

    p = p.reshape(channels, num_anchors)
    class_scores = p[4:, :]  # (C, A)

    # argmax picks the first class on ties
    class_ids = np.argmax(class_scores, axis=0)
    scores = class_scores[class_ids, np.arange(num_anchors)]

    keep = np.flatnonzero(scores > confidence_threshold)
    if keep.size == 0:
        return []

    cx, cy, w, h = p[0:4, keep]
    x1, y1 = invert_letterbox(cx - w / 2, cy - h / 2, meta)
    x2, y2 = invert_letterbox(cx + w / 2, cy + h / 2, meta)
    boxes = clamp_boxes(np.stack([x1, y1, x2, y2], axis=1), img_width, img_height)

    return [
        Detection(
            x1=float(bx1),
            y1=float(by1),
            x2=float(bx2),
            y2=float(by2),
            confidence=float(score),
            class_id=int(cls_id),
            anchor_index=int(anchor),
        )
        for (bx1, by1, bx2, by2), score, cls_id, anchor in zip(boxes, scores[keep], class_ids[keep], keep)
    ]
