from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from detkit.errors import InvalidStateError
from detkit.postprocess import DecodeConfig
from detkit.runtime import CropDetector, load_detector
from detkit.types import DetectionCandidate, Position, Rect, RectSize, Viewport
from detkit.visualize import draw_detections, draw_highlight

from .config import InspectorProfile
from .image_source import ViewportImageSource
from .store import DetectionStore
from .transform import model_to_crop, select_crop_rect, viewport_rect_to_source
from .viewport import ViewportState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capture:
    """Crop pixels plus where they came from, in viewport and source space."""

    pixels: np.ndarray
    crop_rect: Rect
    source_rect: Rect

    @property
    def crop_size(self) -> RectSize:
        return RectSize(self.crop_rect.width, self.crop_rect.height)


class InspectorSession:
    """
    One image, one viewport, one accumulated detection set.

    Calls must be serialized by the caller: at most one `adetect_at` in flight,
    and no pan/zoom while it runs if the result should still line up with what
    the user saw. Results are merged against the capture's own source rect, so
    a moved viewport never corrupts the store, but staleness is not detected.
    """

    def __init__(
        self,
        detector: CropDetector,
        *,
        viewport_size: RectSize,
        profile: InspectorProfile = InspectorProfile(),
        class_names: Optional[Dict[int, str]] = None,
    ) -> None:
        self.profile = profile
        self.detector = detector
        self.class_names = dict(class_names or {})
        self.state = ViewportState(
            int(viewport_size.width),
            int(viewport_size.height),
            max_scale=profile.max_scale,
            initial_fit=profile.initial_fit,
            zoom_rate=profile.zoom_rate,
        )
        self.store = DetectionStore(profile.iou_threshold)
        self.source: Optional[ViewportImageSource] = None
        self.frame: Optional[np.ndarray] = None
        self.state.add_listener(self._on_viewport_change)

    @property
    def viewport(self) -> Viewport:
        return self.state.viewport

    def _on_viewport_change(self, _viewport: Viewport) -> None:
        if self.source is not None:
            self.render()

    def _require_source(self) -> ViewportImageSource:
        if self.source is None:
            raise InvalidStateError("no image loaded")
        return self.source

    # ------------------------------------------------------------------ #
    # image + viewport
    # ------------------------------------------------------------------ #
    def load_image(self, image_bgr: np.ndarray) -> None:
        self.source = ViewportImageSource(image_bgr)
        self.store.reset()
        self.state.load_image(self.source.size)
        logger.debug(
            "loaded %dx%d image, scale=%.4f",
            self.source.size.width,
            self.source.size.height,
            self.viewport.scale,
        )

    def load_image_file(self, path: Union[str, Path]) -> None:
        self.load_image(ViewportImageSource.from_file(path).image)

    def resize(self, width: int, height: int) -> None:
        self.state.resize(width, height)

    def zoom(self, delta: float, rate: Optional[float] = None) -> float:
        return self.state.zoom(delta, rate)

    def pan(self, dx: float, dy: float) -> None:
        self.state.pan(dx, dy)

    def center_image(self) -> None:
        self.state.center_image()

    # ------------------------------------------------------------------ #
    # rendering
    # ------------------------------------------------------------------ #
    def visible_detections(self) -> List[DetectionCandidate]:
        return self.store.query(self.viewport)

    def render(self) -> np.ndarray:
        source = self._require_source()
        frame = source.render(self.viewport)
        self.frame = draw_detections(
            frame,
            self.visible_detections(),
            class_names=self.class_names,
            alpha=self.profile.label_alpha,
        )
        return self.frame

    def highlight(self, cursor: Position, size: Optional[RectSize] = None) -> np.ndarray:
        """Current frame with everything outside the capture window dimmed."""

        frame = self.frame if self.frame is not None else self.render()
        rect = select_crop_rect(cursor, size or self.profile.capture_size, self.viewport)
        return draw_highlight(frame, rect, alpha=self.profile.highlight_alpha)

    # ------------------------------------------------------------------ #
    # detection
    # ------------------------------------------------------------------ #
    def capture(self, cursor: Position, size: Optional[RectSize] = None) -> Capture:
        source = self._require_source()
        if source.frame is None:
            self.render()
        rect = select_crop_rect(cursor, size or self.profile.capture_size, self.viewport)
        pixels = source.get_crop(rect)
        source_rect = viewport_rect_to_source(rect, self.viewport)
        logger.debug("capture at (%.1f, %.1f): crop=%s source=%s", cursor.x, cursor.y, rect, source_rect)
        return Capture(pixels=pixels, crop_rect=rect, source_rect=source_rect)

    def merge(self, capture: Capture, candidates: Sequence[DetectionCandidate]) -> List[DetectionCandidate]:
        """
        Merge model-space candidates produced from `capture` into the store.
        Returns them in source space.
        """

        self._require_source()
        crop_size = capture.crop_size
        in_crop = [model_to_crop(c, self.detector.model_size, crop_size) for c in candidates]
        added = self.store.add_objects(in_crop, crop_size, capture.source_rect)
        logger.debug("merged %d candidates, store now holds %d", len(added), len(self.store))
        self.render()
        return added

    def detect_at(self, cursor: Position, size: Optional[RectSize] = None) -> List[DetectionCandidate]:
        capture = self.capture(cursor, size)
        prediction = self.detector.predict(capture.pixels)
        logger.debug("inference took %.1f ms", prediction.timing.elapsed_ms)
        return self.merge(capture, self.detector.post.process(prediction.output))

    async def adetect_at(
        self,
        cursor: Position,
        size: Optional[RectSize] = None,
        *,
        executor: Optional[Executor] = None,
    ) -> List[DetectionCandidate]:
        """
        Like `detect_at`, but the inference call runs in `executor` (default
        loop executor). That call is the only suspension point.
        """

        capture = self.capture(cursor, size)
        loop = asyncio.get_running_loop()
        candidates = await loop.run_in_executor(executor, self.detector, capture.pixels)
        return self.merge(capture, candidates)


def open_session(
    model_path: Union[str, Path],
    *,
    viewport_size: RectSize,
    profile: InspectorProfile = InspectorProfile(),
    onnx_providers: Optional[Sequence[str]] = None,
) -> InspectorSession:
    """
    Load an ONNX detector configured from `profile` and wrap it in a session.

    A profile without a model size defers to the model's own static input
    size (640x640 for dynamic inputs).
    """

    detector = load_detector(
        model_path,
        decode_cfg=DecodeConfig(conf_threshold=profile.conf_threshold, iou_threshold=profile.iou_threshold),
        model_size=profile.model_size,
        onnx_providers=onnx_providers,
    )
    logger.debug(
        "loaded %s: input %dx%d, providers=%s",
        detector.model_path,
        detector.model_size.width,
        detector.model_size.height,
        list(getattr(detector.provider, "providers_in_use", ())),
    )
    class_names = getattr(detector.provider, "class_names", None)
    return InspectorSession(detector, viewport_size=viewport_size, profile=profile, class_names=class_names)
