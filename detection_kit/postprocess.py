from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .activation import Activation, get_activation
from .decode import decode
from .errors import FormatError
from .filter import FilterConfig, default_max_box_area, filter_candidates
from .mapping import scale_candidates
from .metadata import DEFAULT_CLASS_NAMES
from .nms import NMSConfig, suppress
from .policy import AcceptancePolicy, get_policy
from .settings import Settings
from .types import Detection, DetectionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorConfig:
    """
    Model-bound post-processing configuration. User-facing values (threshold,
    enabled classes) live in `Settings` and are passed per call.
    """

    class_names: Tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_CLASS_NAMES))
    input_size: int = 640
    iou_threshold: float = 0.45
    # Different-class boxes are only suppressed above this IoU; None disables it.
    cross_class_iou_threshold: Optional[float] = 0.7
    max_detections: int = 10
    min_box_area: float = 400.0
    # None follows input_size (90% of the model input area).
    max_box_area: Optional[float] = None
    aspect_ratio_min: float = 0.1
    aspect_ratio_max: float = 10.0
    min_box_side: float = 10.0
    activation: str = "clamp"
    policy: str = "none"

    def __post_init__(self) -> None:
        object.__setattr__(self, "class_names", tuple(str(n) for n in self.class_names))
        if not self.class_names:
            raise ValueError("class_names must not be empty")
        if self.max_box_area is None and self.input_size > 0:
            object.__setattr__(self, "max_box_area", default_max_box_area(self.input_size))
        # Build the sub-configs once so invalid values fail at construction.
        self.filter_config()
        self.nms_config()

    @property
    def num_classes(self) -> int:
        return len(self.class_names)

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            input_size=self.input_size,
            min_box_area=self.min_box_area,
            max_box_area=self.max_box_area,
            aspect_ratio_min=self.aspect_ratio_min,
            aspect_ratio_max=self.aspect_ratio_max,
            min_box_side=self.min_box_side,
        )

    def nms_config(self) -> NMSConfig:
        return NMSConfig(
            iou_threshold=self.iou_threshold,
            cross_class_iou_threshold=self.cross_class_iou_threshold,
            max_detections=self.max_detections,
        )


class DetectionPostprocessor:
    """
    Raw model output -> detections in original image coordinates.

    Stages, once per call and without state between calls:
    decode -> filter (threshold, enabled classes, geometry) -> acceptance
    policy -> map to image pixels -> class-aware NMS.

    NMS runs on pixel-space boxes so the IoU bound holds for the returned
    detections even when the image is not square.
    """

    def __init__(
        self,
        cfg: DetectorConfig = DetectorConfig(),
        *,
        activation: Optional[Activation] = None,
        policy: Optional[AcceptancePolicy] = None,
    ):
        self.cfg = cfg
        self.activation = activation or get_activation(cfg.activation)
        self.policy = policy or get_policy(cfg.policy)
        self._filter_cfg = cfg.filter_config()
        self._nms_cfg = cfg.nms_config()

    def process(
        self,
        raw: np.ndarray,
        orig_size: Tuple[int, int],
        settings: Settings = Settings(),
    ) -> List[Detection]:
        """
        Args:
            raw: model output for a single image, (1, 4 + C, A) or (1, A, 4 + C)
            orig_size: (width, height) of the original image
            settings: threshold / enabled-class snapshot for this call

        Raises:
            FormatError: when no axis of `raw` has length 4 + C
        """

        detections, _ = self._process(raw, orig_size, settings)
        return detections

    def run(
        self,
        raw: np.ndarray,
        orig_size: Tuple[int, int],
        settings: Settings = Settings(),
    ) -> DetectionResult:
        """
        Like `process`, but a malformed tensor yields an empty result with the
        diagnostic in `error` instead of raising.
        """

        try:
            detections, num_candidates = self._process(raw, orig_size, settings)
        except FormatError as exc:
            logger.warning("Discarding model output: %s", exc)
            return DetectionResult(detections=[], num_candidates=0, error=str(exc))
        return DetectionResult(detections=detections, num_candidates=num_candidates)

    def _process(
        self,
        raw: np.ndarray,
        orig_size: Tuple[int, int],
        settings: Settings,
    ) -> Tuple[List[Detection], int]:
        decoded = decode(raw, self.cfg.num_classes)
        candidates = filter_candidates(
            decoded,
            settings,
            self.cfg.class_names,
            self._filter_cfg,
            self.activation,
        )
        if not candidates:
            logger.debug("No candidates above threshold %.2f", settings.confidence_threshold)
            return [], 0

        accepted = self.policy.select(candidates, settings)
        mapped = scale_candidates(accepted, orig_size, self.cfg.input_size, self.cfg.class_names)
        detections = suppress(mapped, self._nms_cfg)

        logger.debug(
            "Post-process: %d anchors -> %d candidates -> %d accepted -> %d detections",
            decoded.num_anchors,
            len(candidates),
            len(accepted),
            len(detections),
        )
        return detections, len(candidates)
