from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .activation import Activation, ClampActivation
from .decode import DecodedOutput, cxcywh_to_xyxy
from .settings import Settings
from .types import Candidate

logger = logging.getLogger(__name__)

MAX_AREA_FRACTION = 0.9


def default_max_box_area(input_size: int) -> float:
    return float(input_size) * float(input_size) * MAX_AREA_FRACTION


@dataclass(frozen=True)
class FilterConfig:
    """
    Geometric guard rails applied to every anchor, in model input space.
    """

    input_size: int = 640
    min_box_area: float = 400.0
    # None means MAX_AREA_FRACTION of the input area.
    max_box_area: Optional[float] = None
    aspect_ratio_min: float = 0.1
    aspect_ratio_max: float = 10.0
    # Smallest accepted box side in pixels.
    min_box_side: float = 10.0

    def __post_init__(self) -> None:
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.max_box_area is None:
            object.__setattr__(self, "max_box_area", default_max_box_area(self.input_size))
        if self.min_box_area < 0 or self.max_box_area < self.min_box_area:
            raise ValueError("box area bounds must satisfy 0 <= min_box_area <= max_box_area")
        if self.aspect_ratio_min <= 0 or self.aspect_ratio_max < self.aspect_ratio_min:
            raise ValueError("aspect ratio bounds must satisfy 0 < aspect_ratio_min <= aspect_ratio_max")
        if self.min_box_side < 0:
            raise ValueError("min_box_side must be >= 0")


def _enabled_mask(class_names: Sequence[str], settings: Settings) -> np.ndarray:
    return np.array([settings.is_enabled(name) for name in class_names], dtype=bool)


def filter_candidates(
    decoded: DecodedOutput,
    settings: Settings,
    class_names: Sequence[str],
    cfg: FilterConfig = FilterConfig(),
    activation: Optional[Activation] = None,
) -> List[Candidate]:
    """
    Turn per-anchor values into accepted candidates, best first.

    An anchor is dropped when its best class score is not above the
    threshold, its class is disabled, its box is degenerate or leaves the
    model input, or its area / aspect ratio / side length is outside `cfg`.
    Equal confidences keep anchor order.
    """

    activation = activation or ClampActivation()
    scores = np.asarray(decoded.class_scores)
    boxes = np.asarray(decoded.boxes_cxcywh, dtype=np.float64)
    if scores.shape[0] == 0:
        return []
    if scores.shape[1] != len(class_names):
        raise ValueError(f"Got {scores.shape[1]} class scores per anchor but {len(class_names)} class names")

    # argmax keeps the first maximum on ties.
    class_ids = np.argmax(scores, axis=1)
    best_raw = scores[np.arange(scores.shape[0]), class_ids]
    confidence = np.asarray(activation.activate(best_raw), dtype=np.float64)

    keep = confidence > settings.confidence_threshold
    keep &= _enabled_mask(class_names, settings)[class_ids]

    w = boxes[:, 2]
    h = boxes[:, 3]
    keep &= (w > 0) & (h > 0)

    xyxy = cxcywh_to_xyxy(boxes)
    size = float(cfg.input_size)
    keep &= (xyxy[:, 0] >= 0) & (xyxy[:, 1] >= 0) & (xyxy[:, 2] <= size) & (xyxy[:, 3] <= size)

    area = w * h
    aspect = np.divide(w, h, out=np.zeros_like(w), where=h > 0)
    keep &= (area >= cfg.min_box_area) & (area <= cfg.max_box_area)
    keep &= (aspect >= cfg.aspect_ratio_min) & (aspect <= cfg.aspect_ratio_max)
    keep &= (w >= cfg.min_box_side) & (h >= cfg.min_box_side)

    idx = np.nonzero(keep)[0]
    # Stable sort so equal confidences stay in anchor order.
    idx = idx[np.argsort(-confidence[idx], kind="stable")]

    candidates = [
        Candidate(
            x1=float(xyxy[i, 0]),
            y1=float(xyxy[i, 1]),
            x2=float(xyxy[i, 2]),
            y2=float(xyxy[i, 3]),
            confidence=float(confidence[i]),
            class_id=int(class_ids[i]),
            area=float(area[i]),
            aspect_ratio=float(aspect[i]),
            anchor=int(i),
        )
        for i in idx
    ]
    logger.debug("Filter kept %d of %d anchors", len(candidates), scores.shape[0])
    return candidates
