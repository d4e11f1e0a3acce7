from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection

Color = Tuple[int, int, int]
PixelBox = Tuple[int, int, int, int]

# BGR, indexed by class id.
_PALETTE = [
    (56, 56, 255),
    (151, 157, 255),
    (31, 112, 255),
    (29, 178, 255),
    (49, 210, 207),
    (10, 249, 72),
    (23, 204, 146),
    (134, 219, 61),
    (52, 147, 26),
    (187, 212, 0),
]


def color_for_class_id(class_id: int) -> Color:
    if 0 <= class_id < len(_PALETTE):
        return _PALETTE[class_id]
    rng = np.random.default_rng(int(class_id))
    b, g, r = (int(v) for v in rng.integers(0, 256, size=3))
    return b, g, r


def text_color_for(background: Color) -> Color:
    """Black on light backgrounds, white on dark ones (BGR luma)."""
    b, g, r = background
    return (0, 0, 0) if 0.114 * b + 0.587 * g + 0.299 * r > 150 else (255, 255, 255)


def format_label(det: Detection) -> str:
    return f"{det.class_name} {det.confidence * 100:.1f}%"


def pixel_box(det: Detection, width: int, height: int) -> PixelBox:
    """Round a detection to integer pixel corners inside a width x height image."""
    corners = np.rint(np.asarray(det.as_xyxy(), dtype=np.float64))
    limits = np.array([width - 1, height - 1, width - 1, height - 1])
    x1, y1, x2, y2 = (int(v) for v in np.clip(corners, 0, limits))
    return x1, y1, x2, y2


def label_rect(box: PixelBox, text_w: int, text_h: int, width: int, height: int) -> PixelBox:
    """
    Background rectangle for a label of text_w x text_h pixels.

    Sits on top of the box, or just inside its top edge when there is no room
    above. Shifted left rather than cut off at the right image border.
    """

    x1, y1 = box[0], box[1]
    top = y1 - text_h if y1 - text_h >= 0 else y1
    left = max(0, min(x1, width - 1 - text_w))
    return left, top, min(left + text_w, width - 1), min(top + text_h, height - 1)


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_confidence: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Return a copy of a BGR image with one box and "name NN.N%" label per
    detection. Stronger detections are drawn last so their labels stay on top.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if not isinstance(image_bgr, np.ndarray) or image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected a BGR image shaped (H, W, 3), got {getattr(image_bgr, 'shape', image_bgr)!r}")

    canvas = image_bgr.copy()
    height, width = canvas.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX

    for det in sorted(detections, key=lambda d: d.confidence):
        box = pixel_box(det, width, height)
        color = color_for_class_id(det.class_id)
        cv2.rectangle(canvas, box[:2], box[2:], color, box_thickness)

        text = format_label(det) if show_confidence else det.class_name
        (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, font_thickness)
        left, top, right, bottom = label_rect(box, text_w, text_h + baseline, width, height)
        cv2.rectangle(canvas, (left, top), (right, bottom), color, cv2.FILLED)
        cv2.putText(
            canvas,
            text,
            (left, bottom - baseline),
            font,
            font_scale,
            text_color_for(color),
            font_thickness,
            cv2.LINE_AA,
        )

    return canvas
