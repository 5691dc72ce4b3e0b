from __future__ import annotations

import enum
import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Union

import numpy as np

from .config import DetectorConfig
from .errors import ModelLoadError
from .letterbox import letterbox, to_blob
from .pipeline import DetectionPipeline
from .types import Detection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, so `models/best.onnx` resolves the same
    way no matter where a script is launched from.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """Absolute paths pass through; relative ones resolve against `root` (or the project root)."""

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()
    return (base / p).resolve()


class InferenceBackend(Protocol):
    def infer(self, blob: np.ndarray) -> np.ndarray:
        ...


BackendFactory = Callable[[Path], InferenceBackend]


def _onnxruntime_factory(providers: Optional[Sequence[str]] = None) -> BackendFactory:
    def factory(model_path: Path) -> InferenceBackend:
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        backend = OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(providers=providers))
        logger.info("Input names: %s", list(backend.input_names))
        logger.info("Output names: %s", list(backend.output_names))
        return backend

    return factory


class ModelState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelSession:
    """
    Lazily created inference session.

    uninitialized -> loading -> ready | failed. A failed session keeps its
    error and refuses to run until `reset()` is called.
    """

    def __init__(self, model_path: PathLike, backend_factory: Optional[BackendFactory] = None):
        self.model_path = Path(model_path)
        self._factory = backend_factory or _onnxruntime_factory()
        self._lock = threading.Lock()
        self._backend: Optional[InferenceBackend] = None
        self._state = ModelState.UNINITIALIZED
        self._error: Optional[BaseException] = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._state is ModelState.READY

    def load(self) -> InferenceBackend:
        with self._lock:
            if self._state is ModelState.READY and self._backend is not None:
                return self._backend
            if self._state is ModelState.FAILED:
                raise ModelLoadError(f"Model failed to load from {self.model_path}: {self._error}") from self._error

            self._state = ModelState.LOADING
            logger.info("Loading model from: %s", self.model_path)
            try:
                backend = self._factory(self.model_path)
            except Exception as exc:
                self._state = ModelState.FAILED
                self._error = exc
                logger.error("Error loading model from %s: %s", self.model_path, exc)
                raise ModelLoadError(f"Model failed to load from {self.model_path}: {exc}") from exc

            self._backend = backend
            self._state = ModelState.READY
            logger.info("Model loaded successfully")
            return backend

    def reset(self) -> None:
        with self._lock:
            self._backend = None
            self._error = None
            self._state = ModelState.UNINITIALIZED

    def infer(self, blob: np.ndarray) -> np.ndarray:
        backend = self.load()
        start = time.perf_counter()
        output = np.asarray(backend.infer(blob))
        logger.debug("Inference time: %.2fms", (time.perf_counter() - start) * 1000.0)
        logger.debug("Output shape: %s", output.shape)
        return output


class Detector:
    """
    Image in, labeled detections out: letterbox -> inference -> decode/NMS.

    Expects BGR images (OpenCV-style) and returns detections in the original
    image's pixel coordinates.
    """

    def __init__(self, session: ModelSession, config: DetectorConfig = DetectorConfig()):
        self.session = session
        self.config = config
        self.pipeline = DetectionPipeline(config)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")

        orig_h, orig_w = image_bgr.shape[:2]
        padded, meta = letterbox(image_bgr, new_size=self.config.input_size)
        output = self.session.infer(to_blob(padded))

        detections = self.pipeline.detect(output, meta, orig_w, orig_h, dims=output.shape)
        logger.info("Found %d detections", len(detections))
        return detections


def load_detector(
    model_path: PathLike,
    config: DetectorConfig = DetectorConfig(),
    *,
    root: Optional[PathLike] = "auto",
    providers: Optional[Sequence[str]] = None,
    backend_factory: Optional[BackendFactory] = None,
) -> Detector:
    """
    Build a Detector for a model on disk. The session is not opened until the
    first image is processed (or `detector.session.load()` is called).

        detector = load_detector("models/best.onnx")
    """

    session = ModelSession(
        resolve_path(model_path, root=root),
        backend_factory=backend_factory or _onnxruntime_factory(providers),
    )
    return Detector(session, config)
