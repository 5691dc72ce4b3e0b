import json
import tempfile
import unittest
from pathlib import Path

from yolo_decoder.config import DEFAULT_CLASS_NAMES, DetectorConfig, load_detector_config, load_run_config
from yolo_decoder.errors import ConfigurationError
from yolo_decoder.metadata import class_labels_from_names, load_class_names
from yolo_decoder.types import ClassLabel, PreprocessMeta


class TestDetectorConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = DetectorConfig()
        self.assertEqual(cfg.input_size, 640)
        self.assertEqual(cfg.confidence_threshold, 0.25)
        self.assertEqual(cfg.iou_threshold, 0.45)
        self.assertEqual(cfg.class_count, 5)
        self.assertEqual([c.name for c in cfg.class_names], ["cane", "cavallo", "elefante", "farfalla", "gallina"])
        self.assertTrue(cfg.class_agnostic_nms)

    def test_string_class_names_are_coerced(self) -> None:
        cfg = DetectorConfig(class_names=["dog", "cat"])
        self.assertEqual(cfg.class_names, (ClassLabel(name="dog"), ClassLabel(name="cat")))

    def test_invalid_values(self) -> None:
        for kwargs in (
            {"input_size": 16},
            {"confidence_threshold": 1.5},
            {"iou_threshold": -0.1},
            {"class_names": ()},
            {"class_names": ("dog", "")},
            {"max_detections": 0},
        ):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ConfigurationError):
                    DetectorConfig(**kwargs)

    def test_frozen(self) -> None:
        cfg = DetectorConfig()
        with self.assertRaises(Exception):
            cfg.iou_threshold = 0.9  # type: ignore[misc]

    def test_preprocess_meta_rejects_non_positive_scale(self) -> None:
        with self.assertRaises(ConfigurationError):
            PreprocessMeta(scale=0.0)


class TestLoadRunConfig(unittest.TestCase):
    def _tmpdir(self) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        return Path(tmpdir.name)

    def _write_config(self, payload: dict) -> Path:
        path = self._tmpdir() / "detector.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_ok(self) -> None:
        path = self._write_config(
            {
                "input_size": 320,
                "confidence_threshold": 0.4,
                "iou_threshold": 0.5,
                "class_names": ["dog", {"name": "cat", "display_name": "Katze", "emoji": "🐈"}],
                "max_detections": 10,
                "class_agnostic_nms": False,
                "model_path": "models/best.onnx",
            }
        )
        run = load_run_config(path)
        cfg = run.detector
        self.assertEqual(cfg.input_size, 320)
        self.assertEqual(cfg.confidence_threshold, 0.4)
        self.assertEqual(cfg.iou_threshold, 0.5)
        self.assertEqual(cfg.class_names[1], ClassLabel(name="cat", display_name="Katze", emoji="🐈"))
        self.assertEqual(cfg.max_detections, 10)
        self.assertFalse(cfg.class_agnostic_nms)
        self.assertEqual(run.model_path, (path.parent / "models" / "best.onnx").resolve())

    def test_empty_object_uses_defaults(self) -> None:
        cfg = load_detector_config(self._write_config({}))
        self.assertEqual(cfg, DetectorConfig())
        self.assertEqual(cfg.class_names, DEFAULT_CLASS_NAMES)

    def test_metadata_relative_to_config(self) -> None:
        root = self._tmpdir()
        (root / "metadata.yaml").write_text("names:\n  0: dog\n  1: cat\n", encoding="utf-8")
        path = root / "detector.json"
        path.write_text(json.dumps({"metadata": "metadata.yaml"}), encoding="utf-8")
        cfg = load_detector_config(path)
        self.assertEqual([c.name for c in cfg.class_names], ["dog", "cat"])

    def test_unknown_keys_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_run_config(self._write_config({"conf": 0.5}))

    def test_class_names_and_metadata_conflict(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_run_config(self._write_config({"class_names": ["dog"], "metadata": "m.yaml"}))

    def test_wrong_types(self) -> None:
        for payload in (
            {"input_size": 640.5},
            {"confidence_threshold": "high"},
            {"iou_threshold": True},
            {"class_agnostic_nms": "no"},
            {"class_names": "dog"},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ConfigurationError):
                    load_run_config(self._write_config(payload))

    def test_invalid_json_and_missing_file(self) -> None:
        path = self._tmpdir() / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ConfigurationError):
            load_run_config(path)
        with self.assertRaises(FileNotFoundError):
            load_run_config(path.parent / "missing.json")


class TestMetadata(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "metadata.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_class_names(self) -> None:
        path = self._write(
            "description: animals\n"
            "names:\n"
            "  0: cane\n"
            "  1: 'cavallo'\n"
            "  # comment\n"
            '  2: "elefante"\n'
            "imgsz: [640, 640]\n"
        )
        self.assertEqual(load_class_names(path), {0: "cane", 1: "cavallo", 2: "elefante"})

    def test_labels_require_contiguous_ids(self) -> None:
        self.assertEqual(
            class_labels_from_names({1: "b", 0: "a"}),
            (ClassLabel(name="a"), ClassLabel(name="b")),
        )
        with self.assertRaises(ConfigurationError):
            class_labels_from_names({0: "a", 2: "c"})
        with self.assertRaises(ConfigurationError):
            class_labels_from_names({})


if __name__ == "__main__":
    unittest.main()
