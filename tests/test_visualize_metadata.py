import tempfile
import unittest
from pathlib import Path

import numpy as np

from detkit.errors import InvalidArgumentError
from detkit.metadata import as_labels, load_class_names, parse_names_literal
from detkit.types import DetectionCandidate, Rect
from detkit.visualize import PALETTE, draw_detections, highlight_regions, label_color, label_color_bgr


class TestPalette(unittest.TestCase):
    def test_label_color_cycles_and_encodes_alpha(self) -> None:
        self.assertEqual(label_color(0), "#e6194b33")
        self.assertEqual(label_color(len(PALETTE)), label_color(0))
        self.assertEqual(label_color(3, alpha=1.0), "#4363d8ff")
        self.assertEqual(label_color(3, alpha=0.0), "#4363d800")

    def test_bgr_matches_hex(self) -> None:
        self.assertEqual(label_color_bgr(0), (0x4B, 0x19, 0xE6))

    def test_alpha_out_of_range(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            label_color(0, alpha=2.0)


class TestHighlightRegions(unittest.TestCase):
    def test_bands_cover_everything_but_window(self) -> None:
        bands = highlight_regions(Rect(10, 20, 30, 40), 100, 80)
        self.assertEqual(
            bands,
            [Rect(0, 0, 100, 20), Rect(0, 20, 10, 40), Rect(40, 20, 60, 40), Rect(0, 60, 100, 20)],
        )
        covered = sum(b.width * b.height for b in bands)
        self.assertEqual(covered, 100 * 80 - 30 * 40)

    def test_window_clamped_into_view(self) -> None:
        bands = highlight_regions(Rect(90, -5, 30, 40), 100, 80)
        self.assertEqual(bands, [Rect(0, 0, 70, 40), Rect(0, 40, 100, 40)])

    def test_half_pixel_window_rounds_up(self) -> None:
        bands = highlight_regions(Rect(10.5, 20.5, 30, 40), 100, 80)
        self.assertEqual(bands[0], Rect(0, 0, 100, 21))
        self.assertEqual(bands[1], Rect(0, 21, 11, 40))


class TestDrawDetections(unittest.TestCase):
    def test_fills_box_and_leaves_rest(self) -> None:
        img = np.zeros((50, 50, 3), dtype=np.uint8)
        det = DetectionCandidate(x=5, y=5, w=40, h=40, class_id=1, confidence=0.9)
        out = draw_detections(img, [det], alpha=0.5)
        self.assertEqual(out[0, 0].tolist(), [0, 0, 0])
        self.assertGreater(int(out[8, 8, 1]), 0)  # green channel of #3cb44b
        self.assertEqual(img.sum(), 0)


class TestMetadata(unittest.TestCase):
    def test_load_class_names(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "metadata.yaml"
        path.write_text(
            "# exported\nnames:\n  0: person\n  1: 'car'\n  2: \"tree\"\nnc: 3\n",
            encoding="utf-8",
        )
        self.assertEqual(load_class_names(str(path)), {0: "person", 1: "car", 2: "tree"})

    def test_parse_names_literal(self) -> None:
        self.assertEqual(parse_names_literal("{0: 'person', 1: 'bicycle'}"), {0: "person", 1: "bicycle"})
        self.assertEqual(parse_names_literal("['a', 'b']"), {0: "a", 1: "b"})
        self.assertEqual(parse_names_literal("not a literal"), {})

    def test_as_labels_sorted(self) -> None:
        labels = as_labels({2: "b", 0: "a"})
        self.assertEqual([(lab.idx, lab.name) for lab in labels], [(0, "a"), (2, "b")])


if __name__ == "__main__":
    unittest.main()
