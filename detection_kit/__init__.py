"""
Post-processing for the safety-equipment detector.

Turns the raw YOLOv8-style output tensor of the model into filtered
detections in original image pixels: decode -> filter -> NMS -> rescale.
The model itself is an injected callable; only NumPy (and OpenCV for image
IO and drawing) is required.
"""

from .activation import ClampActivation, SigmoidActivation, get_activation
from .config import load_detector_config, load_run_config, load_settings
from .decode import DecodedOutput, TensorLayout, decode, detect_layout
from .errors import DecodeError, DetectionError, FormatError
from .filter import FilterConfig, filter_candidates
from .mapping import scale_candidate, scale_candidates
from .metadata import DEFAULT_CLASS_NAMES, load_class_names
from .nms import NMSConfig, box_iou, iou, nms, suppress
from .policy import ConfidenceTierPolicy, PassThroughPolicy, get_policy
from .postprocess import DetectionPostprocessor, DetectorConfig
from .runtime import DetectorPipeline, image_to_blob, read_image
from .settings import Settings
from .types import Candidate, Detection, DetectionResult
from .visualize import draw_detections

__all__ = [
    "ClampActivation",
    "SigmoidActivation",
    "get_activation",
    "load_detector_config",
    "load_run_config",
    "load_settings",
    "DecodedOutput",
    "TensorLayout",
    "decode",
    "detect_layout",
    "DecodeError",
    "DetectionError",
    "FormatError",
    "FilterConfig",
    "filter_candidates",
    "scale_candidate",
    "scale_candidates",
    "DEFAULT_CLASS_NAMES",
    "load_class_names",
    "NMSConfig",
    "box_iou",
    "iou",
    "nms",
    "suppress",
    "ConfidenceTierPolicy",
    "PassThroughPolicy",
    "get_policy",
    "DetectionPostprocessor",
    "DetectorConfig",
    "DetectorPipeline",
    "image_to_blob",
    "read_image",
    "Settings",
    "Candidate",
    "Detection",
    "DetectionResult",
    "draw_detections",
]
