from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, Union

import cv2
import numpy as np

from detkit.errors import InvalidArgumentError, InvalidStateError
from detkit.types import Rect, RectSize, Viewport

from .transform import require_scale


class ImageSource(Protocol):
    def get_crop(self, rect: Rect) -> np.ndarray:
        """Pixels of `rect` (viewport pixels), shaped (rect.height, rect.width, 3)."""
        ...


def read_image(path: Union[str, Path]) -> np.ndarray:
    img = cv2.imread(str(path))
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


class ViewportImageSource:
    """
    Renders a BGR source image into the viewport and serves crops of the last
    rendered frame, the same pixels the user is looking at.
    """

    def __init__(self, image_bgr: np.ndarray) -> None:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise InvalidArgumentError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
        self.image = image_bgr
        self.frame: Optional[np.ndarray] = None

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ViewportImageSource":
        return cls(read_image(path))

    @property
    def size(self) -> RectSize:
        h, w = self.image.shape[:2]
        return RectSize(w, h)

    def render(self, viewport: Viewport) -> np.ndarray:
        """Draw the visible part of the image on a black frame of viewport size."""

        scale = require_scale(viewport)
        m = np.array(
            [
                [scale, 0.0, -viewport.x * scale],
                [0.0, scale, -viewport.y * scale],
            ],
            dtype=np.float32,
        )
        self.frame = cv2.warpAffine(
            self.image,
            m,
            (int(viewport.width), int(viewport.height)),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0),
        )
        return self.frame

    def get_crop(self, rect: Rect) -> np.ndarray:
        if self.frame is None:
            raise InvalidStateError("no frame rendered yet")
        fh, fw = self.frame.shape[:2]
        x0, y0 = int(rect.x), int(rect.y)
        x1, y1 = x0 + int(rect.width), y0 + int(rect.height)
        if x0 < 0 or y0 < 0 or x1 > fw or y1 > fh:
            raise InvalidArgumentError(f"crop {rect} is outside the {fw}x{fh} frame")
        return self.frame[y0:y1, x0:x1].copy()
