from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Tuple, Union

import numpy as np

from .errors import DecodeError
from .postprocess import DetectionPostprocessor, DetectorConfig
from .settings import Settings
from .types import DetectionResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image IO. Install with `pip install opencv-python`.") from e
    return cv2


def read_image(path: PathLike) -> np.ndarray:
    """Read an image from disk as BGR, raising DecodeError when OpenCV cannot."""

    cv2 = _require_cv2()
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Image file not found: {p}")
    image = cv2.imread(str(p))
    if image is None:
        raise DecodeError(f"Failed to decode image: {p}")
    return image


def image_to_blob(image_bgr: np.ndarray, input_size: int = 640) -> PreprocessResult:
    """
    Stretch-resize to (input_size, input_size), BGR -> RGB, scale to [0, 1],
    HWC -> CHW and add the batch axis. The model was trained on stretched
    inputs, which is why boxes map back with a plain per-axis scale.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if input_size <= 0:
        raise ValueError(f"input_size must be > 0, got {input_size}")

    orig_h, orig_w = image_bgr.shape[:2]
    img = image_bgr
    if (orig_w, orig_h) != (input_size, input_size):
        cv2 = _require_cv2()
        img = cv2.resize(image_bgr, (input_size, input_size), interpolation=cv2.INTER_LINEAR)

    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])
    return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h))


class DetectorPipeline:
    """
    preprocess -> inference -> post-process for one BGR image.

    `infer_fn` is the model: any callable that maps the (1, 3, S, S) float32
    blob to the raw output tensor. The pipeline keeps no state between calls,
    so a live-camera loop can call it per frame and drop stale results.
    """

    def __init__(self, infer_fn: InferFn, cfg: DetectorConfig = DetectorConfig(), **post_kwargs):
        self._infer_fn = infer_fn
        self.cfg = cfg
        self.post = DetectionPostprocessor(cfg, **post_kwargs)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        return image_to_blob(image_bgr, self.cfg.input_size)

    def __call__(self, image_bgr: np.ndarray, settings: Settings = Settings()) -> DetectionResult:
        prep = self.preprocess(image_bgr)
        raw = self._infer_fn(prep.blob)
        result = self.post.run(raw, prep.orig_size, settings)
        logger.debug("Found %d detections on %dx%d image", len(result.detections), *prep.orig_size)
        return result

    def detect_file(self, path: PathLike, settings: Settings = Settings()) -> DetectionResult:
        return self(read_image(path), settings)
