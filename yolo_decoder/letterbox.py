from typing import Tuple

import numpy as np

from .types import PreprocessMeta

MID_GRAY = (128, 128, 128)


def letterbox(
    image: np.ndarray,
    new_size: int = 640,
    color: Tuple[int, int, int] = MID_GRAY,
    scaleup: bool = True,
) -> Tuple[np.ndarray, PreprocessMeta]:
    """
    Scale an image uniformly to fit a `new_size` square and center it on a
    solid-color canvas.

    Returns:
        padded: (new_size, new_size, 3) image
        meta: scale and left/top offsets needed to map boxes back
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {image.shape}")

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise ValueError(f"Cannot letterbox an empty image (shape {image.shape})")

    r = min(new_size / w, new_size / h)
    if not scaleup:  # only scale down
        r = min(r, 1.0)

    resized_w, resized_h = int(round(w * r)), int(round(h * r))
    dw = (new_size - resized_w) / 2
    dh = (new_size - resized_h) / 2

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom = int(round(dh - 0.1)), int(round(dh + 0.1))
    left, right = int(round(dw - 0.1)), int(round(dw + 0.1))
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, PreprocessMeta(scale=r, offset_x=float(left), offset_y=float(top))


def to_blob(image_bgr: np.ndarray) -> np.ndarray:
    """BGR HWC uint8 -> RGB NCHW float32 in [0, 1], batch of one."""

    blob = image_bgr[:, :, ::-1].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])
