from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence

from .config import DetectorConfig
from .nms import suppress
from .postprocess import RawOutput, decode
from .types import Detection, PreprocessMeta

logger = logging.getLogger(__name__)


def detect(
    output: RawOutput,
    dims: Optional[Sequence[int]],
    config: DetectorConfig,
    meta: PreprocessMeta,
    img_width: float,
    img_height: float,
) -> List[Detection]:
    """
    Decode, filter and suppress one raw output tensor.

    Returns labeled detections in descending confidence order; an empty list
    means nothing passed the confidence threshold.
    """

    candidates = decode(
        output,
        dims,
        config.class_count,
        config.confidence_threshold,
        meta,
        img_width,
        img_height,
    )
    logger.debug("Filtered to %d candidates above %.3f", len(candidates), config.confidence_threshold)

    kept = suppress(
        candidates,
        config.iou_threshold,
        max_detections=config.max_detections,
        class_agnostic=config.class_agnostic_nms,
    )
    logger.debug("After NMS: %d detections", len(kept))

    return [dataclasses.replace(d, label=config.class_names[d.class_id]) for d in kept]


class DetectionPipeline:
    """
    Entry point for collaborators: an inference backend hands in raw output,
    a renderer takes the detections back.

    Holds only the (frozen) config, so one instance can serve concurrent calls.
    """

    def __init__(self, config: DetectorConfig = DetectorConfig()):
        self.config = config

    def detect(
        self,
        output: RawOutput,
        meta: PreprocessMeta,
        img_width: float,
        img_height: float,
        dims: Optional[Sequence[int]] = None,
    ) -> List[Detection]:
        if dims is not None:
            logger.debug("Processing %s anchors with %d classes", dims[-1], self.config.class_count)
        return detect(output, dims, self.config, meta, img_width, img_height)

    __call__ = detect
