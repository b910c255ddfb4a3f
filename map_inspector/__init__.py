"""
Interactive layer built on top of `detkit`.

`detkit` stays responsible for decoding and suppressing detections in model
space. This package handles:
- coordinate transforms between model, crop, viewport and source space
- viewport state (pan / zoom / resize / image load)
- the detection store that merges crops into one source-space set
- the session that captures crops under the cursor and runs the detector
"""

from __future__ import annotations

from .config import InspectorProfile, load_inspector_profile
from .image_source import ImageSource, ViewportImageSource, read_image
from .session import Capture, InspectorSession, open_session
from .store import DetectionStore
from .transform import (
    candidate_to_viewport,
    crop_to_source,
    model_to_crop,
    model_to_source,
    select_crop_rect,
    source_rect_to_viewport,
    source_to_viewport,
    viewport_rect_to_source,
    viewport_to_source,
)
from .viewport import ViewportState

__all__ = [
    "InspectorProfile",
    "load_inspector_profile",
    "ImageSource",
    "ViewportImageSource",
    "read_image",
    "Capture",
    "InspectorSession",
    "open_session",
    "DetectionStore",
    "candidate_to_viewport",
    "crop_to_source",
    "model_to_crop",
    "model_to_source",
    "select_crop_rect",
    "source_rect_to_viewport",
    "source_to_viewport",
    "viewport_rect_to_source",
    "viewport_to_source",
    "ViewportState",
]
