from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidArgumentError, require_unit_interval
from .nms import nms
from .types import DetectionCandidate, OutputTensor


TensorLike = Union[OutputTensor, np.ndarray]


@dataclass
class DecodeConfig:
    """
    Post-processing settings for one crop's raw output.
    """

    conf_threshold: float = 0.5
    iou_threshold: float = 0.5
    # If False, skip intra-crop NMS and return every candidate above threshold.
    apply_nms: bool = True
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Sequence[int]] = None

    def __post_init__(self) -> None:
        require_unit_interval(self.conf_threshold, "conf_threshold")
        require_unit_interval(self.iou_threshold, "iou_threshold")


def _as_channels_first(output: TensorLike) -> np.ndarray:
    """
    Return the (C, N) matrix of a (1, C, N) output, validating its shape.
    """

    p = output.as_array() if isinstance(output, OutputTensor) else np.asarray(output, dtype=np.float32)
    if p.ndim != 3:
        raise InvalidArgumentError(f"Expected output dims (1, C, N), got {p.shape}")
    if p.shape[0] != 1:
        raise InvalidArgumentError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one crop at a time.")
    if p.shape[1] < 5:
        raise InvalidArgumentError(f"Expected at least 4 box channels + 1 class channel, got {p.shape[1]}")
    return p[0]


def decode_arrays(output: TensorLike, threshold: float = 0.5) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorised decode of a (1, 4 + C, N) output.

    Returns (boxes_xywh, scores, class_ids, class_scores) for the candidates
    whose best class score is strictly above `threshold`. Boxes are corner
    form in model-input pixels; `class_scores` is (K, C).
    """

    threshold = require_unit_interval(threshold, "threshold")
    p = _as_channels_first(output)

    cx, cy, w, h = p[0], p[1], p[2], p[3]
    class_scores = p[4:, :]  # (C, N)
    class_ids = np.argmax(class_scores, axis=0)
    scores = class_scores[class_ids, np.arange(class_scores.shape[1])]

    keep = scores > threshold

    # Convert cxcywh -> xywh (top-left corner)
    boxes = np.stack([cx - w / 2, cy - h / 2, w, h], axis=1)
    return boxes[keep], scores[keep], class_ids[keep], class_scores[:, keep].T


def decode(output: TensorLike, threshold: float = 0.5) -> List[DetectionCandidate]:
    """
    Turn a raw (1, 4 + C, N) output into candidates in model-input space.

    Scores are used as-is (already calibrated per-class probabilities).
    Raises InvalidArgumentError if `threshold` is outside [0, 1].
    """

    boxes, scores, class_ids, class_scores = decode_arrays(output, threshold)
    return [
        DetectionCandidate(
            x=float(x),
            y=float(y),
            w=float(w),
            h=float(h),
            class_id=int(cls_id),
            confidence=float(score),
            all_confidence=tuple(float(s) for s in row),
        )
        for (x, y, w, h), score, cls_id, row in zip(boxes, scores, class_ids, class_scores)
    ]


class CropPostprocessor:
    """
    Decode -> optional class filter -> per-class NMS for a single crop.

    Output stays in model-input pixel space; mapping into crop or source
    space is left to the caller.
    """

    def __init__(self, cfg: DecodeConfig = DecodeConfig()):
        self.cfg = cfg

    def process(self, output: TensorLike) -> List[DetectionCandidate]:
        candidates = decode(output, self.cfg.conf_threshold)
        if not candidates:
            return []

        if self.cfg.class_ids is not None:
            wanted = {int(c) for c in self.cfg.class_ids}
            candidates = [c for c in candidates if c.class_id in wanted]
            if not candidates:
                return []

        if not self.cfg.apply_nms:
            return candidates
        return nms(candidates, self.cfg.iou_threshold)
