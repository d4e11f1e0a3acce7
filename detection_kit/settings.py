from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple

DEFAULT_CONFIDENCE_THRESHOLD = 0.5
# Range offered by the settings dialog; the detector itself accepts [0, 1].
UI_THRESHOLD_RANGE: Tuple[float, float] = (0.3, 0.9)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(value)))


@dataclass(frozen=True)
class Settings:
    """
    Snapshot of user settings read at the start of an inference call.

    enabled_classes:
        None enables every class. When a mapping is given, a class name that
        is missing from it counts as disabled. Stored as a read-only view, so
        snapshots stay hashable.
    """

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    enabled_classes: Optional[Mapping[str, bool]] = None

    def __post_init__(self) -> None:
        if isinstance(self.confidence_threshold, bool) or not isinstance(self.confidence_threshold, (int, float)):
            raise ValueError("confidence_threshold must be a number")
        if not (0.0 <= self.confidence_threshold <= 1.0):
            raise ValueError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if self.enabled_classes is not None:
            # Copy so later edits to the caller's dict do not leak into this snapshot.
            copied = {str(k): bool(v) for k, v in self.enabled_classes.items()}
            object.__setattr__(self, "enabled_classes", MappingProxyType(copied))

    def __hash__(self) -> int:
        classes = None if self.enabled_classes is None else frozenset(self.enabled_classes.items())
        return hash((self.confidence_threshold, classes))

    def is_enabled(self, class_name: str) -> bool:
        if self.enabled_classes is None:
            return True
        return self.enabled_classes.get(class_name, False)

    def with_threshold(self, value: float) -> "Settings":
        return replace(self, confidence_threshold=_clamp(value, 0.0, 1.0))

    def with_class(
        self,
        class_name: str,
        enabled: bool,
        class_names: Optional[Sequence[str]] = None,
    ) -> "Settings":
        """
        Toggle one class and leave every other class as it was.

        A snapshot with `enabled_classes=None` has every class on; turning
        one of them off needs the full class list so the rest stay on.
        """

        if self.enabled_classes is None:
            if class_names is None:
                raise ValueError("class_names is required to toggle a class when every class is enabled")
            current: Dict[str, bool] = {str(name): True for name in class_names}
        else:
            current = dict(self.enabled_classes)
            for name in class_names or ():
                current.setdefault(str(name), False)
        current[class_name] = bool(enabled)
        return replace(self, enabled_classes=current)

    @classmethod
    def for_ui(cls, threshold: float, enabled_classes: Optional[Mapping[str, bool]] = None) -> "Settings":
        lo, hi = UI_THRESHOLD_RANGE
        return cls(confidence_threshold=_clamp(threshold, lo, hi), enabled_classes=enabled_classes)
