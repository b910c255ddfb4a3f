import itertools
import unittest

import numpy as np

from detkit.errors import InvalidArgumentError
from detkit.nms import NMSConfig, iou, iou_one_to_many, nms, nms_indices
from detkit.types import DetectionCandidate


def box(x, y, w, h, cls=0, conf=0.9) -> DetectionCandidate:
    return DetectionCandidate(x=x, y=y, w=w, h=h, class_id=cls, confidence=conf)


def _random_candidates(rng: np.random.Generator, n: int, classes: int = 3):
    out = []
    for _ in range(n):
        x, y = rng.uniform(0, 200, size=2)
        w, h = rng.uniform(5, 60, size=2)
        out.append(box(float(x), float(y), float(w), float(h), int(rng.integers(0, classes)), float(rng.uniform(0, 1))))
    return out


class TestIou(unittest.TestCase):
    def test_self_iou_is_one(self) -> None:
        a = box(3.5, 7.25, 12.0, 4.0)
        self.assertAlmostEqual(iou(a, a), 1.0)

    def test_symmetric(self) -> None:
        a = box(0, 0, 10, 10)
        b = box(5, 5, 10, 10)
        self.assertEqual(iou(a, b), iou(b, a))
        self.assertAlmostEqual(iou(a, b), 25 / 175)

    def test_disjoint_and_degenerate(self) -> None:
        self.assertEqual(iou(box(0, 0, 10, 10), box(20, 20, 5, 5)), 0.0)
        self.assertEqual(iou(box(0, 0, 0, 0), box(0, 0, 0, 0)), 0.0)

    def test_vectorised_matches_scalar(self) -> None:
        rng = np.random.default_rng(7)
        cands = _random_candidates(rng, 20)
        boxes = np.array([c.as_xywh() for c in cands])
        row = iou_one_to_many(boxes[0], boxes)
        for j, c in enumerate(cands):
            self.assertAlmostEqual(row[j], iou(cands[0], c))


class TestNms(unittest.TestCase):
    def test_threshold_out_of_range_rejected(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            nms([box(0, 0, 1, 1)], iou_threshold=1.5)
        with self.assertRaises(InvalidArgumentError):
            nms([], iou_threshold=-0.5)

    def test_keeps_highest_confidence_per_class(self) -> None:
        low = box(0, 0, 10, 10, conf=0.6)
        high = box(1, 0, 10, 10, conf=0.95)
        other_class = box(0, 0, 10, 10, cls=1, conf=0.5)
        kept = nms([low, high, other_class], 0.5)
        self.assertIn(high, kept)
        self.assertIn(other_class, kept)
        self.assertNotIn(low, kept)

    def test_overlap_at_threshold_is_kept(self) -> None:
        a = box(0, 0, 10, 10, conf=0.9)
        b = box(5, 0, 10, 10, conf=0.8)  # iou = 50 / 150
        self.assertEqual(len(nms([a, b], iou(a, b))), 2)
        self.assertEqual(nms([a, b], iou(a, b) - 1e-9), [a])

    def test_ties_keep_input_order(self) -> None:
        first = box(0, 0, 10, 10, conf=0.7)
        second = box(0, 0, 10, 10, conf=0.7)
        self.assertIs(nms([first, second])[0], first)
        self.assertIs(nms([second, first])[0], second)

    def test_no_same_class_pair_above_threshold(self) -> None:
        rng = np.random.default_rng(0)
        for threshold in (0.0, 0.3, 0.5, 0.9):
            kept = nms(_random_candidates(rng, 150), threshold)
            for a, b in itertools.combinations(kept, 2):
                if a.class_id == b.class_id:
                    self.assertLessEqual(iou(a, b), threshold)

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(1)
        once = nms(_random_candidates(rng, 120), 0.4)
        self.assertEqual(nms(once, 0.4), once)

    def test_max_detections_caps_each_class(self) -> None:
        boxes = np.array([[0, 0, 5, 5], [100, 0, 5, 5], [200, 0, 5, 5]], dtype=np.float64)
        scores = np.array([0.2, 0.9, 0.5])
        keep = nms_indices(boxes, scores, NMSConfig(iou_threshold=0.5, max_detections=2))
        self.assertEqual(keep.tolist(), [1, 2])

    def test_zero_cap_keeps_nothing(self) -> None:
        boxes = np.array([[0, 0, 5, 5], [100, 0, 5, 5]], dtype=np.float64)
        scores = np.array([0.9, 0.8])
        keep = nms_indices(boxes, scores, NMSConfig(max_detections=0))
        self.assertEqual(keep.tolist(), [])
        self.assertEqual(nms([box(0, 0, 5, 5)], max_detections=0), [])

    def test_negative_cap_rejected(self) -> None:
        boxes = np.array([[0, 0, 5, 5]], dtype=np.float64)
        with self.assertRaises(InvalidArgumentError):
            nms_indices(boxes, np.array([0.9]), NMSConfig(max_detections=-1))

    def test_empty(self) -> None:
        self.assertEqual(nms([]), [])
        self.assertEqual(nms_indices(np.empty((0, 4)), np.empty((0,)), NMSConfig()).size, 0)


if __name__ == "__main__":
    unittest.main()
