import tempfile
import unittest
from pathlib import Path

import numpy as np

from yolo_decoder.config import DetectorConfig
from yolo_decoder.errors import ModelLoadError
from yolo_decoder.geometry import invert_letterbox
from yolo_decoder.letterbox import letterbox, to_blob
from yolo_decoder.runtime import Detector, ModelSession, ModelState, find_project_root, load_detector, resolve_path


class _FakeBackend:
    """Returns a fixed (1, 4 + C, A) output and records the blobs it saw."""

    def __init__(self, output: np.ndarray):
        self.output = output
        self.blobs = []

    def infer(self, blob: np.ndarray) -> np.ndarray:
        self.blobs.append(blob)
        return self.output


class TestLetterbox(unittest.TestCase):
    def test_wide_image(self) -> None:
        img = np.full((100, 200, 3), 255, dtype=np.uint8)
        padded, meta = letterbox(img, new_size=640)
        self.assertEqual(padded.shape, (640, 640, 3))
        self.assertAlmostEqual(meta.scale, 3.2)
        self.assertEqual((meta.offset_x, meta.offset_y), (0.0, 160.0))
        # mid-gray pad above, image content in the middle
        self.assertEqual(padded[0, 0].tolist(), [128, 128, 128])
        self.assertEqual(padded[320, 320].tolist(), [255, 255, 255])

    def test_meta_maps_corners_back(self) -> None:
        # tall image: 360x480 -> 480x640 content with 80px side bars
        img = np.zeros((480, 360, 3), dtype=np.uint8)
        padded, meta = letterbox(img, new_size=640)
        self.assertEqual(padded[0, 79].tolist(), [128, 128, 128])
        self.assertEqual(padded[0, 80].tolist(), [0, 0, 0])
        self.assertEqual(padded[639, 559].tolist(), [0, 0, 0])
        self.assertEqual(padded[639, 560].tolist(), [128, 128, 128])

        x_left, y_top = invert_letterbox(80.0, 0.0, meta)
        x_right, y_bottom = invert_letterbox(560.0, 640.0, meta)
        self.assertAlmostEqual(x_left, 0.0)
        self.assertAlmostEqual(y_top, 0.0)
        self.assertAlmostEqual(x_right, 360.0, places=4)
        self.assertAlmostEqual(y_bottom, 480.0, places=4)

    def test_to_blob(self) -> None:
        img = np.zeros((4, 4, 3), dtype=np.uint8)
        img[..., 0] = 255  # blue in BGR
        blob = to_blob(img)
        self.assertEqual(blob.shape, (1, 3, 4, 4))
        self.assertEqual(blob.dtype, np.float32)
        self.assertTrue(np.all(blob[0, 2] == 1.0))  # blue lands in the last RGB channel
        self.assertTrue(np.all(blob[0, 0] == 0.0))


class TestModelSession(unittest.TestCase):
    def test_lazy_load_transitions_to_ready(self) -> None:
        backend = _FakeBackend(np.zeros((1, 5, 0), dtype=np.float32))
        seen_states = []

        def factory(path: Path):
            seen_states.append(session.state)
            return backend

        session = ModelSession("models/best.onnx", backend_factory=factory)
        self.assertIs(session.state, ModelState.UNINITIALIZED)

        session.infer(np.zeros((1, 3, 32, 32), dtype=np.float32))
        self.assertEqual(seen_states, [ModelState.LOADING])
        self.assertIs(session.state, ModelState.READY)
        self.assertTrue(session.is_ready)

        # second call reuses the backend
        self.assertIs(session.load(), backend)
        self.assertEqual(len(seen_states), 1)

    def test_failed_load_is_sticky_until_reset(self) -> None:
        calls = []

        def factory(path: Path):
            calls.append(path)
            raise FileNotFoundError(f"Model file not found at {path}")

        session = ModelSession("missing.onnx", backend_factory=factory)
        with self.assertRaises(ModelLoadError):
            session.load()
        self.assertIs(session.state, ModelState.FAILED)
        self.assertIsInstance(session.error, FileNotFoundError)

        with self.assertRaises(ModelLoadError):
            session.infer(np.zeros((1, 3, 32, 32), dtype=np.float32))
        self.assertEqual(len(calls), 1)

        session.reset()
        self.assertIs(session.state, ModelState.UNINITIALIZED)
        self.assertIsNone(session.error)


class TestDetector(unittest.TestCase):
    def test_end_to_end_with_fake_backend(self) -> None:
        # 200x100 image -> scale 3.2, 160px top pad; one confident "elefante" anchor
        output = np.zeros((1, 9, 2), dtype=np.float32)
        output[0, 0:4, 0] = [320, 320, 64, 64]
        output[0, 6, 0] = 0.85
        output[0, 0:4, 1] = [322, 322, 64, 64]
        output[0, 6, 1] = 0.5
        backend = _FakeBackend(output)

        session = ModelSession("best.onnx", backend_factory=lambda path: backend)
        detector = Detector(session, DetectorConfig())
        dets = detector(np.zeros((100, 200, 3), dtype=np.uint8))

        self.assertEqual(len(backend.blobs), 1)
        self.assertEqual(backend.blobs[0].shape, (1, 3, 640, 640))
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].label.name, "elefante")
        self.assertAlmostEqual(dets[0].x1, 90.0, places=4)
        self.assertAlmostEqual(dets[0].y2, 60.0, places=4)

    def test_rejects_non_array(self) -> None:
        session = ModelSession("best.onnx", backend_factory=lambda path: _FakeBackend(np.zeros((1, 9, 0))))
        with self.assertRaises(TypeError):
            Detector(session)(None)

    def test_load_detector_resolves_against_root(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        detector = load_detector(
            "models/best.onnx",
            root=tmpdir.name,
            backend_factory=lambda path: _FakeBackend(np.zeros((1, 9, 0))),
        )
        self.assertEqual(detector.session.model_path, (Path(tmpdir.name).resolve() / "models" / "best.onnx"))
        self.assertIs(detector.session.state, ModelState.UNINITIALIZED)


class TestPaths(unittest.TestCase):
    def test_find_project_root_uses_markers(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        root = Path(tmpdir.name).resolve()
        (root / "pyproject.toml").write_text("", encoding="utf-8")
        nested = root / "a" / "b"
        nested.mkdir(parents=True)
        self.assertEqual(find_project_root(nested), root)

    def test_absolute_path_passes_through(self) -> None:
        p = Path(tempfile.gettempdir()).resolve() / "model.onnx"
        self.assertEqual(resolve_path(p), p)


if __name__ == "__main__":
    unittest.main()
