from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Candidate:
    """
    Box that survived filtering, still in model input space (e.g. 640x640).
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    area: float
    aspect_ratio: float
    anchor: int = -1

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2


@dataclass(frozen=True)
class Detection:
    """
    Final detection in original image pixel coordinates.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    class_name: str

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "confidence": self.confidence,
            "classId": self.class_id,
            "className": self.class_name,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Detection":
        try:
            return cls(
                x1=float(payload["x1"]),
                y1=float(payload["y1"]),
                x2=float(payload["x2"]),
                y2=float(payload["y2"]),
                confidence=float(payload["confidence"]),
                class_id=int(payload["classId"]),
                class_name=str(payload["className"]),
            )
        except KeyError as exc:
            raise ValueError(f"Detection payload is missing key: {exc.args[0]}") from exc

    def __str__(self) -> str:
        return (
            f"Detection(className: {self.class_name}, confidence: {self.confidence * 100:.1f}%, "
            f"bbox: [{self.x1}, {self.y1}, {self.x2}, {self.y2}])"
        )


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one inference call. `error` carries the diagnostic when the
    raw output could not be decoded; detections are empty in that case.
    """

    detections: List[Detection]
    num_candidates: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
