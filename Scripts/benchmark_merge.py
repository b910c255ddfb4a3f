from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from detkit import DetectionCandidate, Rect, RectSize, nms
from map_inspector import DetectionStore


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms),
        mean_ms=float(statistics.fmean(ms)) if ms else 0.0,
        p50_ms=_percentile(ms, 50.0) if ms else 0.0,
        p95_ms=_percentile(ms, 95.0) if ms else 0.0,
    )


def _crop_candidates(rng: np.random.Generator, n: int, n_classes: int, crop: int) -> List[DetectionCandidate]:
    xy = rng.uniform(0, crop * 0.9, size=(n, 2))
    wh = rng.uniform(5, crop * 0.1, size=(n, 2))
    scores = rng.uniform(0.5, 1.0, size=n)
    classes = rng.integers(0, n_classes, size=n)
    return [
        DetectionCandidate(x=float(x), y=float(y), w=float(w), h=float(h), class_id=int(c), confidence=float(s))
        for (x, y), (w, h), s, c in zip(xy, wh, scores, classes)
    ]


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark per-crop NMS and store merge latency as the detection store grows (model-free)."
    )
    parser.add_argument("--crops", type=int, default=200, help="Number of synthetic crops to merge.")
    parser.add_argument("--boxes", type=int, default=100, help="Candidates per crop before NMS.")
    parser.add_argument("--classes", type=int, default=3, help="Number of classes.")
    parser.add_argument("--crop-size", type=int, default=640, help="Crop size in pixels.")
    parser.add_argument("--image-size", type=int, default=20000, help="Square source image size.")
    parser.add_argument("--iou", type=float, default=0.5, help="IoU threshold for NMS.")
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    if args.crops < 1 or args.boxes < 1 or args.classes < 1:
        raise ValueError("--crops, --boxes and --classes must be >= 1")

    rng = np.random.default_rng(int(args.seed))
    store = DetectionStore(float(args.iou))
    size = RectSize(args.crop_size, args.crop_size)

    t_crop: List[float] = []
    t_merge: List[float] = []
    for _ in range(int(args.crops)):
        cands = _crop_candidates(rng, int(args.boxes), int(args.classes), int(args.crop_size))
        ox, oy = rng.uniform(0, args.image_size - args.crop_size, size=2)
        src = Rect(float(ox), float(oy), float(args.crop_size), float(args.crop_size))

        t0 = time.perf_counter()
        kept = nms(cands, float(args.iou))
        t1 = time.perf_counter()
        store.add_objects(kept, size, src)
        t2 = time.perf_counter()

        t_crop.append(t1 - t0)
        t_merge.append(t2 - t1)

    for label, values in (("crop nms", t_crop), ("store merge", t_merge)):
        s = _summarize_ms(values)
        print(f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms p95={s.p95_ms:.3f}ms")
    print(f"store size: {len(store)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
