from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from .metadata import class_name_for
from .types import Candidate, Detection


def _scale(value: float, input_size: int, dim: int) -> float:
    scaled = (value / input_size) * dim
    return min(max(scaled, 0.0), float(dim))


def scale_candidate(
    candidate: Candidate,
    orig_size: Tuple[int, int],
    input_size: int,
    class_names: Sequence[str],
) -> Detection:
    """
    Map a model-space box to the original image and clamp it to the image.

    Args:
        orig_size: (width, height) of the original image
        input_size: side of the square model input the box refers to
    """

    orig_w, orig_h = orig_size
    if orig_w <= 0 or orig_h <= 0:
        raise ValueError(f"orig_size must be positive, got {orig_size}")
    if input_size <= 0:
        raise ValueError(f"input_size must be > 0, got {input_size}")

    return Detection(
        x1=_scale(candidate.x1, input_size, orig_w),
        y1=_scale(candidate.y1, input_size, orig_h),
        x2=_scale(candidate.x2, input_size, orig_w),
        y2=_scale(candidate.y2, input_size, orig_h),
        confidence=candidate.confidence,
        class_id=candidate.class_id,
        class_name=class_name_for(class_names, candidate.class_id),
    )


def scale_candidates(
    candidates: Iterable[Candidate],
    orig_size: Tuple[int, int],
    input_size: int,
    class_names: Sequence[str],
) -> List[Detection]:
    return [scale_candidate(c, orig_size, input_size, class_names) for c in candidates]
