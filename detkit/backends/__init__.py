"""
Inference backends for detkit.

Backends live in their own module so decoding, NMS and geometry stay usable
without an inference runtime installed.
"""

from __future__ import annotations

__all__ = []
