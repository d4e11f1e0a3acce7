"""
JSON run configuration.

    {
      "detector": {"iou_threshold": 0.45, "max_detections": 10, "activation": "clamp"},
      "settings": {"confidence_threshold": 0.5, "enabled_classes": {"FireExtinguisher": true}}
    }

Both blocks are optional; missing keys keep the dataclass defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .metadata import load_class_names, names_to_list
from .postprocess import DetectorConfig
from .settings import Settings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_FLOAT_KEYS = {
    "iou_threshold",
    "min_box_area",
    "max_box_area",
    "aspect_ratio_min",
    "aspect_ratio_max",
    "min_box_side",
}
_INT_KEYS = {"input_size", "max_detections"}
_STR_KEYS = {"activation", "policy", "metadata"}
_DETECTOR_KEYS = _FLOAT_KEYS | _INT_KEYS | _STR_KEYS | {"class_names", "cross_class_iou_threshold"}
_SETTINGS_KEYS = {"confidence_threshold", "enabled_classes"}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _check_unknown(payload: Dict[str, Any], allowed: set, where: str) -> None:
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown {where} keys: {unknown}")


def read_config_file(path: PathLike) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Run config not found: {p}")
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid run config JSON: {p}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Run config must be a JSON object")
    _check_unknown(payload, {"detector", "settings"}, "run config")
    return payload


def parse_detector_config(payload: Dict[str, Any], base_dir: Optional[Path] = None) -> DetectorConfig:
    if not isinstance(payload, dict):
        raise ValueError("'detector' must be an object")
    _check_unknown(payload, _DETECTOR_KEYS, "detector")
    if "class_names" in payload and "metadata" in payload:
        raise ValueError("Use either 'class_names' or 'metadata', not both.")

    kwargs: Dict[str, Any] = {}
    for key in sorted(_FLOAT_KEYS):
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    for key in sorted(_INT_KEYS):
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in ("activation", "policy"):
        if key in payload:
            if not isinstance(payload[key], str):
                raise ValueError(f"{key} must be a string")
            kwargs[key] = payload[key]

    if "cross_class_iou_threshold" in payload:
        kwargs["cross_class_iou_threshold"] = (
            None if payload["cross_class_iou_threshold"] is None else _require_number(payload, "cross_class_iou_threshold")
        )

    if "class_names" in payload:
        names = payload["class_names"]
        if not isinstance(names, list) or not all(isinstance(n, str) and n.strip() for n in names):
            raise ValueError("class_names must be a list of non-empty strings")
        kwargs["class_names"] = tuple(names)
    elif "metadata" in payload:
        if not isinstance(payload["metadata"], str) or not payload["metadata"].strip():
            raise ValueError("metadata must be a non-empty path string")
        meta = Path(payload["metadata"])
        if not meta.is_absolute() and base_dir is not None:
            meta = base_dir / meta
        kwargs["class_names"] = tuple(names_to_list(load_class_names(str(meta))))

    return DetectorConfig(**kwargs)


def parse_settings(payload: Dict[str, Any]) -> Settings:
    if not isinstance(payload, dict):
        raise ValueError("'settings' must be an object")
    _check_unknown(payload, _SETTINGS_KEYS, "settings")

    kwargs: Dict[str, Any] = {}
    if "confidence_threshold" in payload:
        kwargs["confidence_threshold"] = _require_number(payload, "confidence_threshold")
    enabled = payload.get("enabled_classes")
    if enabled is not None:
        if not isinstance(enabled, dict) or not all(isinstance(v, bool) for v in enabled.values()):
            raise ValueError("enabled_classes must map class names to true/false")
        kwargs["enabled_classes"] = enabled
    return Settings(**kwargs)


def load_detector_config(path: PathLike) -> DetectorConfig:
    payload = read_config_file(path)
    return parse_detector_config(payload.get("detector", {}), base_dir=Path(path).resolve().parent)


def load_settings(path: PathLike) -> Settings:
    payload = read_config_file(path)
    return parse_settings(payload.get("settings", {}))


def load_run_config(path: PathLike) -> Tuple[DetectorConfig, Settings]:
    payload = read_config_file(path)
    cfg = parse_detector_config(payload.get("detector", {}), base_dir=Path(path).resolve().parent)
    settings = parse_settings(payload.get("settings", {}))
    logger.info("Loaded run config from %s (%d classes)", path, cfg.num_classes)
    return cfg, settings
