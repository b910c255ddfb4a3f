"""
Mappings between the four coordinate spaces:

- model:    the detector's fixed input resolution
- crop:     pixels of the capture window, cut from the viewport
- viewport: display pixels
- source:   the full original image; where stored detections live
"""

from __future__ import annotations

import math
from dataclasses import replace

from detkit.errors import InvalidStateError
from detkit.types import DetectionCandidate, Position, Rect, RectSize, Viewport


def require_scale(viewport: Viewport) -> float:
    scale = float(viewport.scale)
    if not scale > 0:
        raise InvalidStateError(f"viewport scale must be > 0, got {viewport.scale!r}")
    return scale


def viewport_to_source(p: Position, viewport: Viewport) -> Position:
    scale = require_scale(viewport)
    return Position(viewport.x + p.x / scale, viewport.y + p.y / scale)


def source_to_viewport(p: Position, viewport: Viewport) -> Position:
    scale = require_scale(viewport)
    return Position((p.x - viewport.x) * scale, (p.y - viewport.y) * scale)


def viewport_rect_to_source(rect: Rect, viewport: Viewport) -> Rect:
    scale = require_scale(viewport)
    return Rect(
        x=viewport.x + rect.x / scale,
        y=viewport.y + rect.y / scale,
        width=rect.width / scale,
        height=rect.height / scale,
    )


def source_rect_to_viewport(rect: Rect, viewport: Viewport) -> Rect:
    scale = require_scale(viewport)
    return Rect(
        x=(rect.x - viewport.x) * scale,
        y=(rect.y - viewport.y) * scale,
        width=rect.width * scale,
        height=rect.height * scale,
    )


def candidate_to_viewport(c: DetectionCandidate, viewport: Viewport) -> DetectionCandidate:
    scale = require_scale(viewport)
    return replace(
        c,
        x=(c.x - viewport.x) * scale,
        y=(c.y - viewport.y) * scale,
        w=c.w * scale,
        h=c.h * scale,
    )


def model_to_crop(c: DetectionCandidate, model_size: RectSize, crop_size: RectSize) -> DetectionCandidate:
    sx = crop_size.width / model_size.width
    sy = crop_size.height / model_size.height
    return replace(c, x=c.x * sx, y=c.y * sy, w=c.w * sx, h=c.h * sy)


def crop_to_source(c: DetectionCandidate, crop_size: RectSize, crop_source_rect: Rect) -> DetectionCandidate:
    """
    Place a crop-pixel box inside the source rect the crop was cut from.
    """

    fx = crop_source_rect.width / crop_size.width
    fy = crop_source_rect.height / crop_size.height
    return replace(
        c,
        x=crop_source_rect.x + c.x * fx,
        y=crop_source_rect.y + c.y * fy,
        w=c.w * fx,
        h=c.h * fy,
    )


def model_to_source(c: DetectionCandidate, model_size: RectSize, crop_source_rect: Rect) -> DetectionCandidate:
    """Model -> crop -> source in one step; the crop's pixel size cancels out."""

    return crop_to_source(c, model_size, crop_source_rect)


def select_crop_rect(cursor: Position, size: RectSize, viewport: Viewport) -> Rect:
    """
    Capture window of `size` centered on `cursor`, clamped to lie fully inside
    the viewport. A window larger than the viewport shrinks to fit.
    """

    width = min(int(size.width), int(viewport.width))
    height = min(int(size.height), int(viewport.height))
    if width <= 0 or height <= 0:
        raise InvalidStateError(f"viewport has no area ({viewport.width}x{viewport.height})")

    x = min(max(int(math.floor(cursor.x - width / 2 + 0.5)), 0), int(viewport.width) - width)
    y = min(max(int(math.floor(cursor.y - height / 2 + 0.5)), 0), int(viewport.height) - height)
    return Rect(x=x, y=y, width=width, height=height)
