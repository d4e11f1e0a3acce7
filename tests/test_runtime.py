import tempfile
import unittest
from pathlib import Path

import numpy as np

from detection_kit.errors import DecodeError
from detection_kit.postprocess import DetectorConfig
from detection_kit.runtime import DetectorPipeline, image_to_blob, read_image
from detection_kit.settings import Settings
from detection_kit.visualize import (
    color_for_class_id,
    draw_detections,
    format_label,
    label_rect,
    pixel_box,
    text_color_for,
)
from detection_kit.types import Detection

# Small model input so tests stay fast; guard rails scaled down with it.
SMALL = DetectorConfig(
    class_names=("OxygenTank", "FireAlarm"),
    input_size=64,
    min_box_area=4.0,
    max_box_area=64.0 * 64.0,
    min_box_side=2.0,
)


class TestImageToBlob(unittest.TestCase):
    def test_layout_and_scaling(self) -> None:
        img = np.zeros((64, 64, 3), dtype=np.uint8)
        img[..., 0] = 255  # blue channel in BGR
        prep = image_to_blob(img, 64)
        self.assertEqual(prep.blob.shape, (1, 3, 64, 64))
        self.assertEqual(prep.blob.dtype, np.float32)
        self.assertEqual(prep.orig_size, (64, 64))
        # RGB order: blue ends up in the last channel.
        self.assertTrue(np.allclose(prep.blob[0, 2], 1.0))
        self.assertTrue(np.allclose(prep.blob[0, 0], 0.0))

    def test_resize_reports_original_size(self) -> None:
        img = np.full((48, 80, 3), 128, dtype=np.uint8)
        prep = image_to_blob(img, 64)
        self.assertEqual(prep.blob.shape, (1, 3, 64, 64))
        self.assertEqual(prep.orig_size, (80, 48))

    def test_rejects_bad_input(self) -> None:
        with self.assertRaises(TypeError):
            image_to_blob(None, 64)
        with self.assertRaises(ValueError):
            image_to_blob(np.zeros((64, 64), dtype=np.uint8), 64)


class TestDetectorPipeline(unittest.TestCase):
    def _fake_model(self, blob: np.ndarray) -> np.ndarray:
        self.assertEqual(blob.shape, (1, 3, 64, 64))
        raw = np.zeros((1, 6, 100), dtype=np.float32)
        raw[0, :, 0] = [32, 32, 16, 16, 0.1, 0.9]
        return raw

    def test_end_to_end(self) -> None:
        pipe = DetectorPipeline(self._fake_model, SMALL)
        img = np.zeros((64, 64, 3), dtype=np.uint8)
        result = pipe(img, Settings(confidence_threshold=0.5))
        self.assertTrue(result.ok)
        self.assertEqual(len(result.detections), 1)
        det = result.detections[0]
        self.assertEqual(det.class_name, "FireAlarm")
        self.assertTrue(np.allclose(det.as_xyxy(), [24, 24, 40, 40]))

    def test_wrong_model_output_is_not_fatal(self) -> None:
        pipe = DetectorPipeline(lambda blob: np.zeros((1, 84, 100), dtype=np.float32), SMALL)
        with self.assertLogs("detection_kit.postprocess", level="WARNING"):
            result = pipe(np.zeros((64, 64, 3), dtype=np.uint8))
        self.assertFalse(result.ok)
        self.assertEqual(result.detections, [])

    def test_read_image_errors(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        with self.assertRaises(FileNotFoundError):
            read_image(Path(tmpdir.name) / "missing.png")
        bogus = Path(tmpdir.name) / "bogus.png"
        bogus.write_bytes(b"not an image")
        with self.assertRaises(DecodeError):
            read_image(bogus)


class TestVisualize(unittest.TestCase):
    def test_draw_returns_copy(self) -> None:
        img = np.zeros((120, 160, 3), dtype=np.uint8)
        det = Detection(x1=20, y1=30, x2=100, y2=110, confidence=0.8, class_id=1, class_name="FireAlarm")
        out = draw_detections(img, [det])
        self.assertEqual(out.shape, img.shape)
        self.assertEqual(int(img.sum()), 0)
        self.assertGreater(int(out.sum()), 0)

    def test_label_and_colors(self) -> None:
        det = Detection(x1=0, y1=0, x2=1, y2=1, confidence=0.875, class_id=0, class_name="OxygenTank")
        self.assertEqual(format_label(det), "OxygenTank 87.5%")
        self.assertEqual(color_for_class_id(42), color_for_class_id(42))

    def test_pixel_box_rounds_and_stays_inside_image(self) -> None:
        det = Detection(x1=-3.0, y1=10.4, x2=170.0, y2=59.6, confidence=0.6, class_id=0, class_name="OxygenTank")
        self.assertEqual(pixel_box(det, 160, 120), (0, 10, 159, 60))

    def test_label_goes_above_box_when_there_is_room(self) -> None:
        self.assertEqual(label_rect((20, 50, 100, 110), 40, 12, 160, 120), (20, 38, 60, 50))

    def test_label_moves_inside_at_top_and_left_at_right_edge(self) -> None:
        self.assertEqual(label_rect((150, 2, 159, 40), 40, 12, 160, 120), (119, 2, 159, 14))

    def test_text_contrasts_with_background(self) -> None:
        self.assertEqual(text_color_for((255, 255, 255)), (0, 0, 0))
        self.assertEqual(text_color_for((56, 56, 255)), (255, 255, 255))

    def test_draw_without_confidence_near_top_edge(self) -> None:
        img = np.zeros((60, 80, 3), dtype=np.uint8)
        det = Detection(x1=70, y1=0, x2=80, y2=30, confidence=0.9, class_id=3, class_name="FireAlarm")
        out = draw_detections(img, [det], show_confidence=False)
        # label band is filled just inside the box top
        self.assertGreater(int(out[:5].sum()), 0)

    def test_rejects_grayscale_image(self) -> None:
        with self.assertRaises(ValueError):
            draw_detections(np.zeros((10, 10), dtype=np.uint8), [])


if __name__ == "__main__":
    unittest.main()
