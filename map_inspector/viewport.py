from __future__ import annotations

from typing import Callable, List, Optional

from detkit.errors import InvalidArgumentError, InvalidStateError
from detkit.types import RectSize, Viewport

from .transform import require_scale

ViewportListener = Callable[[Viewport], None]


class ViewportState:
    """
    Pan / zoom / resize state of the display window over one source image.

    Listeners registered with `add_listener` are called after every mutation;
    the session uses this as its re-render request.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        max_scale: float = 10.0,
        initial_fit: float = 0.75,
        zoom_rate: float = 0.0001,
    ) -> None:
        if max_scale <= 0:
            raise InvalidArgumentError("max_scale must be > 0")
        if initial_fit <= 0:
            raise InvalidArgumentError("initial_fit must be > 0")
        self.viewport = Viewport()
        self.image_size: Optional[RectSize] = None
        self.max_scale = float(max_scale)
        self.initial_fit = float(initial_fit)
        self.zoom_rate = float(zoom_rate)
        self._listeners: List[ViewportListener] = []
        self._set_size(width, height)

    def add_listener(self, listener: ViewportListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self.viewport)

    def _set_size(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise InvalidArgumentError(f"viewport size must be > 0, got {width}x{height}")
        self.viewport.width = int(width)
        self.viewport.height = int(height)

    def _require_image(self) -> RectSize:
        if self.image_size is None:
            raise InvalidStateError("no image loaded")
        return self.image_size

    @property
    def min_scale(self) -> float:
        """Scale at which the whole image exactly fits the viewport."""

        image = self._require_image()
        return min(self.viewport.width / image.width, self.viewport.height / image.height)

    def load_image(self, image_size: RectSize) -> None:
        self.image_size = image_size
        self.viewport.scale = self.min_scale * self.initial_fit
        self._center()
        self._changed()

    def center_image(self) -> None:
        self._require_image()
        self._center()
        self._changed()

    def _center(self) -> None:
        image = self._require_image()
        scale = require_scale(self.viewport)
        self.viewport.x = image.width / 2 - self.viewport.width / 2 / scale
        self.viewport.y = image.height / 2 - self.viewport.height / 2 / scale

    def zoom(self, delta: float, rate: Optional[float] = None) -> float:
        rate = self.zoom_rate if rate is None else float(rate)
        lo = self.min_scale
        self.viewport.scale = max(min(self.viewport.scale + delta * rate, self.max_scale), lo)
        self._changed()
        return self.viewport.scale

    def pan(self, dx: float, dy: float) -> None:
        scale = require_scale(self.viewport)
        self.viewport.x += dx / scale
        self.viewport.y += dy / scale
        self._changed()

    def resize(self, width: int, height: int) -> None:
        self._set_size(width, height)
        self._changed()
