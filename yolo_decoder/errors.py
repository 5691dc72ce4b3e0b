class YoloDecoderError(Exception):
    """Base class for errors raised by yolo_decoder."""


class ConfigurationError(YoloDecoderError, ValueError):
    """
    Raised when tensor dims, thresholds or class metadata are inconsistent.

    Always raised before any anchor is processed, so a bad configuration never
    produces partial detections.
    """


class ModelLoadError(YoloDecoderError, RuntimeError):
    """Raised when the inference session could not be created."""
