from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .errors import require_unit_interval
from .types import DetectionCandidate, Rect

# Fixed label palette, indexed by class_id mod len(PALETTE).
PALETTE: Tuple[str, ...] = (
    "#e6194b", "#3cb44b", "#ffe119", "#4363d8", "#f58231",
    "#911eb4", "#46f0f0", "#f032e6", "#bcf60c", "#fabebe",
    "#008080", "#e6beff", "#9a6324", "#fffac8", "#800000",
    "#aaffc3", "#808000", "#ffd8b1", "#000075", "#808080",
    "#ffffff", "#000000",
)


def label_color(class_id: int, alpha: float = 0.2) -> str:
    """`#rrggbbaa` color for a class, alpha in [0, 1]."""

    alpha = require_unit_interval(alpha, "alpha")
    color = PALETTE[int(class_id) % len(PALETTE)]
    return f"{color}{int(math.floor(alpha * 255 + 0.5)):02x}"


def label_color_bgr(class_id: int) -> Tuple[int, int, int]:
    """Same palette entry as `label_color`, as an OpenCV BGR tuple."""

    color = PALETTE[int(class_id) % len(PALETTE)]
    r, g, b = int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)
    return b, g, r


def highlight_regions(rect: Rect, width: int, height: int) -> List[Rect]:
    """
    The four bands of a `width` x `height` view lying outside `rect`
    (top, left, right, bottom). `rect` is clamped into the view first;
    empty bands are omitted.
    """

    w = min(int(rect.width), width)
    h = min(int(rect.height), height)
    x = min(max(int(math.floor(rect.x + 0.5)), 0), width - w)
    y = min(max(int(math.floor(rect.y + 0.5)), 0), height - h)

    bands = [
        Rect(0, 0, width, y),
        Rect(0, y, x, h),
        Rect(x + w, y, width - x - w, h),
        Rect(0, y + h, width, height - y - h),
    ]
    return [b for b in bands if b.width > 0 and b.height > 0]


def _blend_rect(out: np.ndarray, x0: int, y0: int, x1: int, y1: int, color: Tuple[int, int, int], alpha: float) -> None:
    roi = out[y0:y1, x0:x1]
    if roi.size == 0:
        return
    fill = np.empty_like(roi)
    fill[:] = color
    out[y0:y1, x0:x1] = (roi * (1.0 - alpha) + fill * alpha).astype(out.dtype)


def draw_highlight(
    image_bgr: np.ndarray,
    rect: Rect,
    *,
    color: Tuple[int, int, int] = (0, 0, 0),
    alpha: float = 0.3,
) -> np.ndarray:
    """Dim everything outside `rect` and return a copy."""

    alpha = require_unit_interval(alpha, "alpha")
    out = image_bgr.copy()
    h, w = out.shape[:2]
    for band in highlight_regions(rect, w, h):
        x0, y0 = int(band.x), int(band.y)
        _blend_rect(out, x0, y0, x0 + int(band.width), y0 + int(band.height), color, alpha)
    return out


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[DetectionCandidate],
    *,
    class_names: Optional[Dict[int, str]] = None,
    alpha: float = 0.2,
    font_scale: float = 0.4,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Fill each box with its translucent class color and write the label at its
    center. Boxes are expected in the image's own (viewport) pixel space.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    alpha = require_unit_interval(alpha, "alpha")
    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w))
        y1i = int(np.clip(round(y1), 0, h))
        x2i = int(np.clip(round(x2), 0, w))
        y2i = int(np.clip(round(y2), 0, h))

        _blend_rect(out, x1i, y1i, x2i, y2i, label_color_bgr(det.class_id), alpha)

        label = class_names.get(det.class_id, str(det.class_id)) if class_names else str(det.class_id)
        (tw, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        cx = (x1i + x2i) // 2
        cy = (y1i + y2i) // 2
        cv2.putText(
            out,
            label,
            (cx - tw // 2, cy + th // 2),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
