"""
Decoding of raw YOLOv8-style detection output.

The exported model emits one tensor per image shaped either
(1, 4 + C, A) "features first" or (1, A, 4 + C) "anchors first", where
A is the anchor count (8400 for a 640 input: 80x80 + 40x40 + 20x20 grids)
and the feature axis holds [cx, cy, w, h, class_scores...].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import FormatError

logger = logging.getLogger(__name__)

BOX_FEATURES = 4


@dataclass(frozen=True)
class TensorLayout:
    num_anchors: int
    num_features: int
    # True when the tensor is (A, F) and must be read row-per-anchor.
    needs_transpose: bool


@dataclass(frozen=True)
class DecodedOutput:
    """
    Per-anchor view of the raw output.

    boxes_cxcywh: (A, 4) center-form boxes in model input space
    class_scores: (A, C) raw class scores (before activation)
    """

    boxes_cxcywh: np.ndarray
    class_scores: np.ndarray
    layout: TensorLayout

    @property
    def num_anchors(self) -> int:
        return self.layout.num_anchors


def detect_layout(shape: Sequence[int], num_classes: int) -> TensorLayout:
    """
    Decide which inner axis is the feature axis (length 4 + num_classes).

    The anchors-first check runs first, so a square (F, F) tensor is read as
    anchors-first.
    """

    if len(shape) != 2:
        raise FormatError(f"Expected a 2-D (features, anchors) shape, got {tuple(shape)}", shape)
    if num_classes < 1:
        raise ValueError(f"num_classes must be >= 1, got {num_classes}")

    dim1, dim2 = int(shape[0]), int(shape[1])
    num_features = BOX_FEATURES + num_classes

    if dim2 == num_features:
        return TensorLayout(num_anchors=dim1, num_features=dim2, needs_transpose=True)
    if dim1 == num_features:
        return TensorLayout(num_anchors=dim2, num_features=dim1, needs_transpose=False)

    raise FormatError(
        f"Unexpected output dimensions [{dim1}][{dim2}]: neither axis equals 4 + {num_classes} classes",
        shape,
    )


def decode(raw: np.ndarray, num_classes: int) -> DecodedOutput:
    """
    Split a raw output tensor into center-form boxes and class scores.

    Accepts (1, F, A), (1, A, F) or the same without the batch axis. The
    returned arrays are views into `raw`; nothing is transposed in memory.
    """

    p = np.asarray(raw)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise FormatError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.", p.shape)
        p = p[0]
    if p.ndim != 2:
        raise FormatError(f"Unsupported output rank {p.ndim} (shape {p.shape})", p.shape)

    layout = detect_layout(p.shape, num_classes)
    # Anchors-first is already (A, F); features-first becomes (A, F) through a view.
    per_anchor = p if layout.needs_transpose else p.T

    boxes = per_anchor[:, 0:BOX_FEATURES]
    scores = per_anchor[:, BOX_FEATURES:layout.num_features]

    logger.debug(
        "Decoded %d anchors x %d features (needs_transpose=%s)",
        layout.num_anchors,
        layout.num_features,
        layout.needs_transpose,
    )
    return DecodedOutput(boxes_cxcywh=boxes, class_scores=scores, layout=layout)


def cxcywh_to_xyxy(boxes: np.ndarray) -> np.ndarray:
    cx, cy, w, h = boxes.T
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)
