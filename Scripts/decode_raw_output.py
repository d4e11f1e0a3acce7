from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import numpy as np

from detection_kit import (
    DetectionPostprocessor,
    DetectorConfig,
    Settings,
    draw_detections,
    load_run_config,
    read_image,
)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Decode a saved raw model output (.npy) into detections and print them as JSON."
    )
    parser.add_argument("raw", help="Path to the raw output tensor saved with numpy.save (1, 4+C, A) or (1, A, 4+C).")
    parser.add_argument("--config", default=None, help="JSON run config with optional 'detector' / 'settings' blocks.")
    parser.add_argument("--image", default=None, help="Original image; its size is used for rescaling.")
    parser.add_argument("--orig-size", default=None, help='Original size as "WIDTHxHEIGHT" when no --image is given.')
    parser.add_argument("--conf", type=float, default=None, help="Override the confidence threshold.")
    parser.add_argument("--sigmoid", action="store_true", help="Treat class scores as logits (apply sigmoid).")
    parser.add_argument("--out", default=None, help="Write the image with drawn detections here (needs --image).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        cfg, settings = load_run_config(Path(args.config))
    else:
        cfg, settings = DetectorConfig(), Settings()
    if args.conf is not None:
        settings = settings.with_threshold(args.conf)
    if args.sigmoid:
        cfg = replace(cfg, activation="sigmoid")

    image = None
    if args.image:
        image = read_image(args.image)
        orig_size = (int(image.shape[1]), int(image.shape[0]))
    elif args.orig_size:
        try:
            w, h = (int(v) for v in str(args.orig_size).lower().split("x"))
        except ValueError as exc:
            raise ValueError(f'--orig-size must look like "640x480", got {args.orig_size!r}') from exc
        orig_size = (w, h)
    else:
        orig_size = (cfg.input_size, cfg.input_size)

    if args.out and image is None:
        raise ValueError("--out requires --image")

    raw = np.load(args.raw)
    result = DetectionPostprocessor(cfg).run(raw, orig_size, settings)

    json.dump(
        {
            "orig_size": list(orig_size),
            "num_candidates": result.num_candidates,
            "error": result.error,
            "detections": [d.to_dict() for d in result.detections],
        },
        sys.stdout,
        indent=2,
    )
    sys.stdout.write("\n")

    if args.out and image is not None:
        import cv2

        vis = draw_detections(image, result.detections)
        if not cv2.imwrite(args.out, vis):
            raise RuntimeError(f"Failed to write output image: {args.out}")

    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
