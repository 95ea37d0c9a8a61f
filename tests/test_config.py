import json
import tempfile
import unittest
from pathlib import Path

from yolo_overlay.config import DetectorProfile, load_detector_profile


class TestDetectorProfile(unittest.TestCase):
    def _write_profile(self, payload: dict) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_ok(self) -> None:
        path = self._write_profile(
            {
                "schema_version": 1,
                "conf_threshold": 0.5,
                "iou_threshold": 0.45,
                "unknown_label": "?",
                "num_threads": 2,
                "coords_normalized": False,
                "notes": "asl",
            }
        )
        profile = load_detector_profile(path)
        self.assertIsInstance(profile, DetectorProfile)
        self.assertEqual(profile.conf_threshold, 0.5)
        self.assertEqual(profile.iou_threshold, 0.45)
        self.assertEqual(profile.unknown_label, "?")
        self.assertEqual(profile.num_threads, 2)
        self.assertFalse(profile.coords_normalized)
        self.assertEqual(profile.notes, "asl")

    def test_defaults(self) -> None:
        profile = load_detector_profile(self._write_profile({"schema_version": 1}))
        self.assertEqual(profile, DetectorProfile())
        self.assertEqual(profile.conf_threshold, 0.7)
        self.assertEqual(profile.iou_threshold, 0.7)

    def test_unknown_keys_rejected(self) -> None:
        path = self._write_profile({"schema_version": 1, "extra": 123})
        with self.assertRaises(ValueError):
            load_detector_profile(path)

    def test_bad_types_rejected(self) -> None:
        for payload in (
            {"schema_version": 1, "conf_threshold": "high"},
            {"schema_version": 1, "iou_threshold": True},
            {"schema_version": 1, "num_threads": 1.5},
            {"schema_version": 1, "coords_normalized": "yes"},
            {"schema_version": "1"},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_detector_profile(self._write_profile(payload))

    def test_out_of_range_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_profile(self._write_profile({"schema_version": 1, "conf_threshold": 1.2}))
        with self.assertRaises(ValueError):
            load_detector_profile(self._write_profile({"schema_version": 2}))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_detector_profile(Path("missing_profile.json"))

    def test_invalid_json(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_detector_profile(path)

    def test_decoder_config(self) -> None:
        cfg = DetectorProfile(conf_threshold=0.6, coords_normalized=False).decoder_config(input_size=(640, 640))
        self.assertEqual(cfg.conf_threshold, 0.6)
        self.assertEqual(cfg.iou_threshold, 0.7)
        self.assertEqual(cfg.input_size, (640, 640))
        self.assertFalse(cfg.coords_normalized)

    def test_coordinate_convention_defers_to_backend(self) -> None:
        profile = load_detector_profile(self._write_profile({"schema_version": 1}))
        self.assertIsNone(profile.coords_normalized)
        cfg = profile.decoder_config(input_size=(640, 640), backend_coords_normalized=False)
        self.assertFalse(cfg.coords_normalized)
        self.assertTrue(profile.decoder_config().coords_normalized)

    def test_explicit_coordinate_convention_overrides_backend(self) -> None:
        cfg = DetectorProfile(coords_normalized=True).decoder_config(
            input_size=(640, 640), backend_coords_normalized=False
        )
        self.assertTrue(cfg.coords_normalized)


if __name__ == "__main__":
    unittest.main()
