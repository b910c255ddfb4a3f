from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .errors import InvalidArgumentError, require_unit_interval
from .types import DetectionCandidate, candidates_to_arrays


@dataclass
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def iou(a: DetectionCandidate, b: DetectionCandidate) -> float:
    """Intersection-over-union of two corner-form boxes. Zero-area pairs give 0."""

    x1 = max(a.x, b.x)
    y1 = max(a.y, b.y)
    x2 = min(a.x + a.w, b.x + b.w)
    y2 = min(a.y + a.h, b.y + b.h)
    inter = max(0.0, x2 - x1) * max(0.0, y2 - y1)
    union = a.w * a.h + b.w * b.h - inter
    if union <= 0:
        return 0.0
    return float(inter / union)


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IOU of one xywh box against (M, 4) xywh boxes. Same arithmetic as `iou`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.float64)

    x, y, w, h = box
    xx1 = np.maximum(x, boxes[:, 0])
    yy1 = np.maximum(y, boxes[:, 1])
    xx2 = np.minimum(x + w, boxes[:, 0] + boxes[:, 2])
    yy2 = np.minimum(y + h, boxes[:, 1] + boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    union = w * h + boxes[:, 2] * boxes[:, 3] - inter
    out = np.zeros_like(inter, dtype=np.float64)
    np.divide(inter, union, out=out, where=union > 0)
    return out


def nms_indices(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Single-class NMS. Expects boxes shape (N, 4) in xywh and scores shape (N,).
    Returns indices of boxes to keep, highest score first.

    Ties on score keep input order. Suppressed boxes are tombstoned in a mask
    instead of being removed from the working order.
    """

    if cfg.max_detections is not None and cfg.max_detections < 0:
        raise InvalidArgumentError(f"max_detections must be >= 0, got {cfg.max_detections}")

    n = int(scores.shape[0])
    if n == 0:
        return np.empty((0,), dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    suppressed = np.zeros(n, dtype=bool)
    keep: List[int] = []

    for pos in range(n):
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[pos]
        if suppressed[i]:
            continue
        keep.append(int(i))

        rest = order[pos + 1 :]
        rest = rest[~suppressed[rest]]
        if rest.size == 0:
            break
        overlaps = iou_one_to_many(boxes[i], boxes[rest])
        suppressed[rest[overlaps > cfg.iou_threshold]] = True

    return np.array(keep, dtype=np.int64)


def nms(
    candidates: Sequence[DetectionCandidate],
    iou_threshold: float = 0.5,
    max_detections: Optional[int] = None,
) -> List[DetectionCandidate]:
    """
    Per-class non-maximum suppression.

    Candidates are partitioned by `class_id`; within each class the highest
    confidence box is kept and every same-class box overlapping it with
    IOU > `iou_threshold` is dropped. Classes are emitted in order of first
    appearance. `max_detections` caps each class.
    """

    cfg = NMSConfig(iou_threshold=require_unit_interval(iou_threshold, "iou_threshold"), max_detections=max_detections)
    if not candidates:
        return []

    boxes, scores, class_ids = candidates_to_arrays(candidates)

    groups: Dict[int, List[int]] = {}
    for idx, cls in enumerate(class_ids.tolist()):
        groups.setdefault(int(cls), []).append(idx)

    kept: List[DetectionCandidate] = []
    for idx_list in groups.values():
        idx = np.array(idx_list, dtype=np.int64)
        keep_local = nms_indices(boxes[idx], scores[idx], cfg)
        kept.extend(candidates[int(i)] for i in idx[keep_local])
    return kept
