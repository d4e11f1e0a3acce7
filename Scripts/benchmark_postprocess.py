from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from detection_kit import DetectionPostprocessor, DetectorConfig, Settings


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _synthetic_output(rng: np.random.Generator, num_classes: int, anchors: int, input_size: int) -> np.ndarray:
    """(1, 4 + C, A) tensor with random boxes inside the input and bounded class scores."""

    cxcy = rng.uniform(60, input_size - 60, size=(2, anchors))
    wh = rng.uniform(15, 110, size=(2, anchors))
    scores = rng.uniform(0.0, 1.0, size=(num_classes, anchors)) ** 4
    return np.concatenate([cxcy, wh, scores], axis=0)[None, ...].astype(np.float32)


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark post-processing latency on synthetic model output.")
    parser.add_argument("--anchors", type=int, default=8400, help="Anchor count (8400 for a 640 input).")
    parser.add_argument("--conf", type=float, default=0.5, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=10, help="Max detections kept after NMS.")
    parser.add_argument("--policy", default="none", help="Acceptance policy: none / tiered.")
    parser.add_argument("--warmup", type=int, default=10, help="Runs to execute but not record.")
    parser.add_argument("--repeats", type=int, default=200, help="Recorded runs.")
    parser.add_argument("--seed", type=int, default=0, help="RNG seed for the synthetic tensor.")
    args = parser.parse_args()

    if args.anchors < 1:
        raise ValueError("--anchors must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    cfg = DetectorConfig(iou_threshold=float(args.iou), max_detections=int(args.max_det), policy=args.policy)
    post = DetectionPostprocessor(cfg)
    settings = Settings(confidence_threshold=float(args.conf))
    raw = _synthetic_output(np.random.default_rng(args.seed), cfg.num_classes, int(args.anchors), cfg.input_size)

    timings: List[float] = []
    kept = 0
    for i in range(int(args.warmup) + int(args.repeats)):
        t0 = time.perf_counter()
        detections = post.process(raw, orig_size=(1280, 720), settings=settings)
        t1 = time.perf_counter()
        if i >= int(args.warmup):
            timings.append(t1 - t0)
            kept = len(detections)

    s = _summarize_ms(timings)
    print(
        f"postprocess: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )
    print(f"anchors={args.anchors} classes={cfg.num_classes} detections={kept}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
