import unittest

import numpy as np

from detection_kit.nms import NMSConfig, box_iou, iou, nms, suppress
from detection_kit.types import Candidate


def _cand(box, confidence: float, class_id: int = 0, anchor: int = -1) -> Candidate:
    x1, y1, x2, y2 = box
    w, h = x2 - x1, y2 - y1
    return Candidate(
        x1=x1, y1=y1, x2=x2, y2=y2, confidence=confidence, class_id=class_id, area=w * h, aspect_ratio=w / h, anchor=anchor
    )


class TestIoU(unittest.TestCase):
    def test_identical(self) -> None:
        self.assertAlmostEqual(iou((0, 0, 10, 10), (0, 0, 10, 10)), 1.0)

    def test_partial(self) -> None:
        self.assertAlmostEqual(iou((0, 0, 100, 100), (0, 0, 100, 80)), 0.8)
        self.assertAlmostEqual(iou((0, 0, 10, 10), (5, 0, 15, 10)), 50.0 / 150.0)

    def test_disjoint_and_touching(self) -> None:
        self.assertEqual(iou((0, 0, 10, 10), (20, 20, 30, 30)), 0.0)
        self.assertEqual(iou((0, 0, 10, 10), (10, 0, 20, 10)), 0.0)

    def test_zero_area_boxes(self) -> None:
        self.assertEqual(iou((5, 5, 5, 5), (5, 5, 5, 5)), 0.0)

    def test_vectorised(self) -> None:
        out = box_iou((0, 0, 10, 10), np.array([[0, 0, 10, 10], [5, 0, 15, 10], [50, 50, 60, 60]]))
        self.assertTrue(np.allclose(out, [1.0, 1.0 / 3.0, 0.0]))


class TestSuppress(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(suppress([]), [])

    def test_single_always_kept(self) -> None:
        c = _cand((10, 10, 50, 50), 0.6)
        self.assertEqual(suppress([c]), [c])

    def test_duplicate_keeps_higher_confidence(self) -> None:
        hi = _cand((100, 100, 200, 200), 0.9)
        lo = _cand((100, 100, 200, 200), 0.6)
        self.assertEqual(suppress([hi, lo]), [hi])

    def test_iou_above_threshold_same_class(self) -> None:
        a = _cand((0, 0, 100, 100), 0.9)
        b = _cand((0, 0, 100, 80), 0.7)
        self.assertEqual(suppress([a, b], NMSConfig(iou_threshold=0.3)), [a])

    def test_iou_below_threshold_same_class_kept(self) -> None:
        a = _cand((0, 0, 10, 10), 0.9)
        b = _cand((5, 0, 15, 10), 0.7)  # IoU 1/3
        self.assertEqual(suppress([a, b], NMSConfig(iou_threshold=0.45)), [a, b])

    def test_cross_class_only_at_high_overlap(self) -> None:
        a = _cand((0, 0, 100, 100), 0.9, class_id=0)
        b = _cand((0, 0, 100, 80), 0.8, class_id=1)  # IoU 0.8 with a
        c = _cand((0, 0, 100, 60), 0.7, class_id=2)  # IoU 0.6 with a, 0.75 with b
        out = suppress([a, b, c], NMSConfig(iou_threshold=0.45, cross_class_iou_threshold=0.7))
        self.assertEqual(out, [a, c])

    def test_cross_class_disabled(self) -> None:
        a = _cand((0, 0, 100, 100), 0.9, class_id=0)
        b = _cand((0, 0, 100, 80), 0.8, class_id=1)
        out = suppress([a, b], NMSConfig(iou_threshold=0.45, cross_class_iou_threshold=None))
        self.assertEqual(out, [a, b])

    def test_cross_class_never_stricter_than_same_class(self) -> None:
        a = _cand((0, 0, 100, 100), 0.9, class_id=0)
        b = _cand((0, 0, 100, 80), 0.8, class_id=1)  # IoU 0.8
        out = suppress([a, b], NMSConfig(iou_threshold=0.9, cross_class_iou_threshold=0.7))
        self.assertEqual(out, [a, b])

    def test_suppressed_box_does_not_suppress_others(self) -> None:
        a = _cand((0, 0, 10, 10), 0.9)
        b = _cand((4, 0, 14, 10), 0.8)  # IoU 0.43 with a -> suppressed at 0.3
        c = _cand((9, 0, 19, 10), 0.7)  # IoU 0.05 with a, 0.43 with b
        self.assertEqual(suppress([a, b, c], NMSConfig(iou_threshold=0.3)), [a, c])

    def test_max_detections(self) -> None:
        cands = [_cand((i * 20, 0, i * 20 + 10, 10), 0.9 - i * 0.01) for i in range(8)]
        out = suppress(cands, NMSConfig(max_detections=3))
        self.assertEqual(out, cands[:3])

    def test_random_subset_and_postcondition(self) -> None:
        rng = np.random.default_rng(7)
        xy = rng.uniform(0, 500, size=(300, 2))
        wh = rng.uniform(10, 120, size=(300, 2))
        conf = np.sort(rng.uniform(0.5, 1.0, size=300))[::-1]
        cls = rng.integers(0, 3, size=300)
        cands = [
            _cand((xy[i, 0], xy[i, 1], xy[i, 0] + wh[i, 0], xy[i, 1] + wh[i, 1]), float(conf[i]), int(cls[i]), i)
            for i in range(300)
        ]
        cfg = NMSConfig(iou_threshold=0.3, max_detections=300)
        out = suppress(cands, cfg)

        self.assertTrue(all(any(o is c for c in cands) for o in out))
        anchors = [o.anchor for o in out]
        self.assertEqual(anchors, sorted(anchors))
        for i, a in enumerate(out):
            for b in out[i + 1:]:
                if a.class_id == b.class_id:
                    self.assertLessEqual(iou(a.as_xyxy(), b.as_xyxy()), cfg.iou_threshold)
                elif cfg.cross_class_iou_threshold is not None:
                    self.assertLessEqual(iou(a.as_xyxy(), b.as_xyxy()), cfg.cross_class_iou_threshold)


class TestArrayNms(unittest.TestCase):
    def test_keeps_best_and_disjoint(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10], [50, 50, 60, 60]], dtype=np.float32)
        scores = np.array([0.8, 0.9, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.5))
        self.assertEqual(keep.tolist(), [1, 2])

    def test_empty(self) -> None:
        keep = nms(np.zeros((0, 4), dtype=np.float32), np.zeros((0,), dtype=np.float32), NMSConfig())
        self.assertEqual(keep.shape, (0,))

    def test_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            NMSConfig(iou_threshold=1.5)
        with self.assertRaises(ValueError):
            NMSConfig(max_detections=0)


if __name__ == "__main__":
    unittest.main()
