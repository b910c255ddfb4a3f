from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from .errors import InvalidArgumentError


@dataclass(frozen=True)
class DetectionCandidate:
    """
    A single detection box in corner form.

    `(x, y)` is the top-left corner and `w, h` the box size. The coordinate
    space (model / crop / viewport / source) is implied by whoever holds the
    candidate; moving between spaces always produces a new candidate.
    """

    x: float
    y: float
    w: float
    h: float
    class_id: int
    confidence: float
    all_confidence: Tuple[float, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if self.w < 0 or self.h < 0:
            raise InvalidArgumentError(f"Box size must be >= 0, got w={self.w!r}, h={self.h!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidArgumentError(f"confidence must be in [0, 1], got {self.confidence!r}")

    @property
    def area(self) -> float:
        return self.w * self.h

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.w, self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.w, self.y + self.h


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class RectSize:
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidArgumentError(f"RectSize must be > 0, got {self.width!r}x{self.height!r}")


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def size(self) -> RectSize:
        return RectSize(self.width, self.height)


@dataclass
class Viewport:
    """
    Display window over the source image.

    (x, y) are source-space coordinates of the top-left display pixel,
    width/height are display pixels and scale is display pixels per source unit.
    """

    x: float = 0.0
    y: float = 0.0
    width: int = 0
    height: int = 0
    scale: float = 1.0


@dataclass(frozen=True)
class OutputTensor:
    """Raw model output: flat float data plus its dims, typically (1, C, N)."""

    data: np.ndarray
    dims: Tuple[int, ...]

    def __post_init__(self) -> None:
        expected = int(np.prod(self.dims)) if self.dims else 0
        if np.asarray(self.data).size != expected:
            raise InvalidArgumentError(
                f"Tensor data has {np.asarray(self.data).size} values, dims {self.dims} require {expected}"
            )

    @classmethod
    def from_array(cls, array: np.ndarray) -> "OutputTensor":
        arr = np.asarray(array, dtype=np.float32)
        return cls(data=arr.reshape(-1), dims=tuple(int(d) for d in arr.shape))

    def as_array(self) -> np.ndarray:
        return np.asarray(self.data, dtype=np.float32).reshape(self.dims)


def candidates_to_arrays(
    candidates: Sequence[DetectionCandidate],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Stack candidates into (N, 4) xywh boxes, (N,) scores and (N,) class ids."""

    if not candidates:
        return np.empty((0, 4), dtype=np.float64), np.empty((0,), dtype=np.float64), np.empty((0,), dtype=np.int64)
    boxes = np.array([c.as_xywh() for c in candidates], dtype=np.float64)
    scores = np.array([c.confidence for c in candidates], dtype=np.float64)
    class_ids = np.array([c.class_id for c in candidates], dtype=np.int64)
    return boxes, scores, class_ids
