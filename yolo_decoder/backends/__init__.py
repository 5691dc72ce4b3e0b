"""
Optional inference backends for yolo_decoder.

Backends are kept in a separate module so decoding and suppression stay
lightweight and can be used without installing an inference runtime.
"""

from __future__ import annotations

__all__ = []
