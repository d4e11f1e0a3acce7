from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

Box = Tuple[float, float, float, float]


class _Boxed(Protocol):
    class_id: int

    def as_xyxy(self) -> Box:
        ...


T = TypeVar("T", bound=_Boxed)


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    # Boxes of different classes are suppressed only above this overlap.
    # None turns cross-class suppression off.
    cross_class_iou_threshold: Optional[float] = 0.7
    max_detections: int = 10

    def __post_init__(self) -> None:
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError(f"iou_threshold must be in [0, 1], got {self.iou_threshold}")
        if self.cross_class_iou_threshold is not None and not (0.0 <= self.cross_class_iou_threshold <= 1.0):
            raise ValueError(f"cross_class_iou_threshold must be in [0, 1], got {self.cross_class_iou_threshold}")
        if self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")


def box_iou(box: Sequence[float], boxes: np.ndarray) -> np.ndarray:
    """
    IoU of one xyxy box against an (N, 4) array of xyxy boxes.
    Non-overlapping pairs and zero-area unions give 0.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    x1, y1, x2, y2 = (float(v) for v in box)

    xx1 = np.maximum(x1, boxes[:, 0])
    yy1 = np.maximum(y1, boxes[:, 1])
    xx2 = np.minimum(x2, boxes[:, 2])
    yy2 = np.minimum(y2, boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    areas = np.maximum(0.0, boxes[:, 2] - boxes[:, 0]) * np.maximum(0.0, boxes[:, 3] - boxes[:, 1])
    union = area + areas - inter
    return np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)


def iou(a: Box, b: Box) -> float:
    return float(box_iou(a, np.asarray([b], dtype=np.float64))[0])


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Class-agnostic NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, best score first.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int32)

    order = np.argsort(-np.asarray(scores), kind="stable")
    keep = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = order[0]
        keep.append(i)
        overlap = box_iou(boxes[i], boxes[order[1:]])
        order = order[1:][overlap <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int32)


def suppress(candidates: Sequence[T], cfg: NMSConfig = NMSConfig()) -> List[T]:
    """
    Greedy class-aware NMS over boxes already sorted best first. Works on
    `Candidate` (model space) and `Detection` (pixel space) alike.

    A later candidate is dropped when its IoU with a kept one is above
    `iou_threshold` and the classes match, or above
    `cross_class_iou_threshold` whatever the classes. Survivors keep their
    input order; at most `max_detections` are returned.
    """

    n = len(candidates)
    if n == 0:
        return []

    boxes = np.array([c.as_xyxy() for c in candidates], dtype=np.float64)
    class_ids = np.array([c.class_id for c in candidates])
    suppressed = np.zeros(n, dtype=bool)
    kept: List[T] = []

    for i in range(n):
        if suppressed[i]:
            continue
        kept.append(candidates[i])
        if len(kept) >= cfg.max_detections:
            break

        rest = np.arange(i + 1, n)
        rest = rest[~suppressed[rest]]
        if rest.size == 0:
            continue

        overlap = box_iou(boxes[i], boxes[rest])
        drop = (overlap > cfg.iou_threshold) & (class_ids[rest] == class_ids[i])
        if cfg.cross_class_iou_threshold is not None:
            drop |= overlap > max(cfg.iou_threshold, cfg.cross_class_iou_threshold)
        suppressed[rest[drop]] = True

    logger.debug("NMS kept %d of %d candidates", len(kept), n)
    return kept
