import unittest

from detkit.errors import InvalidArgumentError, InvalidStateError
from detkit.nms import iou
from detkit.types import DetectionCandidate, Rect, RectSize, Viewport
from map_inspector.store import DetectionStore


def cand(x, y, w, h, cls=0, conf=0.9) -> DetectionCandidate:
    return DetectionCandidate(x=x, y=y, w=w, h=h, class_id=cls, confidence=conf)


class TestDetectionStoreMerge(unittest.TestCase):
    def test_overlapping_crops_collapse_to_higher_confidence(self) -> None:
        store = DetectionStore(0.5)
        crop = RectSize(100, 100)

        # Crop A covers source [0, 200) at 2 source units per pixel.
        # Crop B covers source [100, 300): the same object, shifted 2.1 source units
        # to the right, gives a source-space IOU of 37.9 / 42.1 ~= 0.9.
        store.add_objects([cand(60, 20, 20, 20, conf=0.7)], crop, Rect(0, 0, 200, 200))
        added = store.add_objects([cand(11.05, 20, 20, 20, conf=0.85)], crop, Rect(100, 0, 200, 200))

        first_src = cand(120, 40, 40, 40, conf=0.7)
        self.assertAlmostEqual(iou(first_src, added[0]), 0.9, places=2)
        self.assertGreater(iou(first_src, added[0]), 0.5)

        self.assertEqual(len(store), 1)
        kept = store.detections[0]
        self.assertAlmostEqual(kept.confidence, 0.85)
        for got, want in zip(kept.as_xywh(), (122.1, 40.0, 40.0, 40.0)):
            self.assertAlmostEqual(got, want)

    def test_lower_confidence_later_crop_is_dropped(self) -> None:
        store = DetectionStore()
        store.add_objects([cand(0, 0, 10, 10, conf=0.9)], RectSize(10, 10), Rect(0, 0, 10, 10))
        store.add_objects([cand(0, 0, 10, 10, conf=0.6)], RectSize(10, 10), Rect(0.5, 0, 10, 10))
        self.assertEqual([d.confidence for d in store], [0.9])

    def test_distinct_objects_and_classes_accumulate(self) -> None:
        store = DetectionStore()
        size, src = RectSize(100, 100), Rect(0, 0, 100, 100)
        store.add_objects([cand(0, 0, 10, 10), cand(50, 50, 10, 10)], size, src)
        store.add_objects([cand(0, 0, 10, 10, cls=1)], size, src)
        self.assertEqual(len(store), 3)

    def test_reset(self) -> None:
        store = DetectionStore()
        store.add_objects([cand(0, 0, 10, 10)], RectSize(10, 10), Rect(0, 0, 10, 10))
        store.reset()
        self.assertEqual(len(store), 0)
        self.assertEqual(store.detections, ())

    def test_invalid_threshold(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            DetectionStore(1.01)


class TestDetectionStoreQuery(unittest.TestCase):
    def setUp(self) -> None:
        self.store = DetectionStore()
        # identity crop: store holds exactly these source boxes
        self.store.add_objects(
            [
                cand(20, 20, 10, 10, cls=0),  # inside
                cand(95, 20, 10, 10, cls=1),  # crosses right edge at scale 1
                cand(-5, 40, 10, 10, cls=2),  # crosses left edge
                cand(0, 90, 100, 10, cls=3),  # touches bottom/left/right exactly
            ],
            RectSize(100, 100),
            Rect(0, 0, 100, 100),
        )

    def test_only_fully_visible_boxes_returned(self) -> None:
        vp = Viewport(x=0, y=0, width=100, height=100, scale=1.0)
        visible = sorted(d.class_id for d in self.store.query(vp))
        self.assertEqual(visible, [0, 3])

    def test_results_are_in_viewport_space(self) -> None:
        vp = Viewport(x=10, y=10, width=100, height=100, scale=2.0)
        visible = self.store.query(vp)
        self.assertEqual([d.class_id for d in visible], [0])
        self.assertEqual(visible[0].as_xywh(), (20.0, 20.0, 20.0, 20.0))
        # store itself stays in source space
        self.assertIn((20, 20, 10, 10), [d.as_xywh() for d in self.store])

    def test_non_positive_scale_rejected(self) -> None:
        with self.assertRaises(InvalidStateError):
            DetectionStore().query(Viewport(x=0, y=0, width=10, height=10, scale=0.0))


if __name__ == "__main__":
    unittest.main()
