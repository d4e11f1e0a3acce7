"""
Score activations.

The bundled YOLOv8 ONNX export applies the sigmoid inside the graph, so its
class scores are already probabilities and `ClampActivation` is the right
choice. Exports that stop at the raw head logits need `SigmoidActivation`.
"""

from __future__ import annotations

from typing import Dict, Protocol, Type, Union

import numpy as np

ScoreLike = Union[float, np.ndarray]


class Activation(Protocol):
    name: str

    def activate(self, raw_score: ScoreLike) -> ScoreLike:
        ...


class ClampActivation:
    """Scores are already bounded probabilities; clip stray values to [0, 1]."""

    name = "clamp"

    def activate(self, raw_score: ScoreLike) -> ScoreLike:
        out = np.clip(raw_score, 0.0, 1.0)
        return float(out) if np.ndim(out) == 0 else out


class SigmoidActivation:
    """Raw logits -> probabilities."""

    name = "sigmoid"

    def activate(self, raw_score: ScoreLike) -> ScoreLike:
        x = np.asarray(raw_score, dtype=np.float64)
        # exp(-|x|) never overflows; pick the branch by sign.
        e = np.exp(-np.abs(x))
        out = np.where(x >= 0, 1.0 / (1.0 + e), e / (1.0 + e))
        return float(out) if out.ndim == 0 else out


_ACTIVATIONS: Dict[str, Type] = {
    "clamp": ClampActivation,
    "identity": ClampActivation,
    "sigmoid": SigmoidActivation,
}


def get_activation(name: str) -> Activation:
    key = str(name).strip().lower()
    if key not in _ACTIVATIONS:
        raise ValueError(f"Unknown activation {name!r}. Choose one of {sorted(_ACTIVATIONS)}.")
    return _ACTIVATIONS[key]()
