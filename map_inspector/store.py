from __future__ import annotations

from typing import Iterator, List, Sequence, Tuple

from detkit.errors import require_unit_interval
from detkit.nms import nms
from detkit.types import DetectionCandidate, Rect, RectSize, Viewport

from .transform import candidate_to_viewport, crop_to_source, require_scale


class DetectionStore:
    """
    All detections found so far, in source-image coordinates.

    Every insert re-runs per-class NMS over the whole set, so an object seen
    in two overlapping crops collapses to its highest-confidence box.
    """

    def __init__(self, iou_threshold: float = 0.5) -> None:
        self.iou_threshold = require_unit_interval(iou_threshold, "iou_threshold")
        self._objects: List[DetectionCandidate] = []

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[DetectionCandidate]:
        return iter(tuple(self._objects))

    @property
    def detections(self) -> Tuple[DetectionCandidate, ...]:
        return tuple(self._objects)

    def reset(self) -> None:
        self._objects = []

    def add_objects(
        self,
        candidates: Sequence[DetectionCandidate],
        size: RectSize,
        source_rect: Rect,
    ) -> List[DetectionCandidate]:
        """
        Merge candidates expressed in a `size` pixel space (the crop, or the
        model input it was resized to) that covers `source_rect` of the image.

        Returns the source-space versions of `candidates`.
        """

        mapped = [crop_to_source(c, size, source_rect) for c in candidates]
        self._objects = nms(self._objects + mapped, self.iou_threshold)
        return mapped

    def query(self, viewport: Viewport) -> List[DetectionCandidate]:
        """Stored boxes in viewport pixels, keeping only those fully on screen."""

        require_scale(viewport)
        out: List[DetectionCandidate] = []
        for obj in self._objects:
            v = candidate_to_viewport(obj, viewport)
            if v.x >= 0 and v.x + v.w <= viewport.width and v.y >= 0 and v.y + v.h <= viewport.height:
                out.append(v)
        return out
