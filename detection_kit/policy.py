"""
Acceptance policies run between filtering and NMS.

They only decide which candidates go on to suppression; they never reorder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol, Sequence, Type

from .settings import Settings
from .types import Candidate


class AcceptancePolicy(Protocol):
    def select(self, candidates: Sequence[Candidate], settings: Settings) -> List[Candidate]:
        ...


class PassThroughPolicy:
    def select(self, candidates: Sequence[Candidate], settings: Settings) -> List[Candidate]:
        return list(candidates)


@dataclass(frozen=True)
class ConfidenceTierPolicy:
    """
    Stricter acceptance by confidence band:

    - confidence >= high: accepted
    - confidence >= mid: accepted when area >= mid_min_area
    - otherwise: accepted when confidence >= threshold + low_margin
    """

    high: float = 0.9
    mid: float = 0.8
    mid_min_area: float = 1600.0
    low_margin: float = 0.1

    def __post_init__(self) -> None:
        if not (0.0 <= self.mid <= self.high <= 1.0):
            raise ValueError("tiers must satisfy 0 <= mid <= high <= 1")
        if self.mid_min_area < 0:
            raise ValueError("mid_min_area must be >= 0")
        if self.low_margin < 0:
            raise ValueError("low_margin must be >= 0")

    def accepts(self, candidate: Candidate, settings: Settings) -> bool:
        if candidate.confidence >= self.high:
            return True
        if candidate.confidence >= self.mid:
            return candidate.area >= self.mid_min_area
        return candidate.confidence >= settings.confidence_threshold + self.low_margin

    def select(self, candidates: Sequence[Candidate], settings: Settings) -> List[Candidate]:
        return [c for c in candidates if self.accepts(c, settings)]


_POLICIES: Dict[str, Type] = {
    "none": PassThroughPolicy,
    "tiered": ConfidenceTierPolicy,
}


def get_policy(name: str) -> AcceptancePolicy:
    key = str(name).strip().lower()
    if key not in _POLICIES:
        raise ValueError(f"Unknown acceptance policy {name!r}. Choose one of {sorted(_POLICIES)}.")
    return _POLICIES[key]()
