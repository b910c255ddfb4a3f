"""
Detection runtime for crop-based inference.

Decodes raw (1, 4 + C, N) detector outputs into corner-form candidates,
suppresses duplicates per class, and wraps the inference provider. Only NumPy
is needed for the core; OpenCV is used for pixel resizing and drawing, and
onnxruntime by the default backend.
"""

from .errors import InvalidArgumentError, InvalidStateError, ModelNotLoadedError
from .types import DetectionCandidate, OutputTensor, Position, Rect, RectSize, Viewport
from .nms import NMSConfig, iou, nms
from .postprocess import CropPostprocessor, DecodeConfig, decode
from .preprocess import to_blob
from .runtime import CropDetector, InferenceProvider, Prediction, find_project_root, load_detector, resolve_path
from .metadata import Label, load_class_names, parse_names_literal
from .visualize import PALETTE, draw_detections, draw_highlight, highlight_regions, label_color, label_color_bgr

__all__ = [
    "InvalidArgumentError",
    "InvalidStateError",
    "ModelNotLoadedError",
    "DetectionCandidate",
    "OutputTensor",
    "Position",
    "Rect",
    "RectSize",
    "Viewport",
    "NMSConfig",
    "iou",
    "nms",
    "CropPostprocessor",
    "DecodeConfig",
    "decode",
    "to_blob",
    "CropDetector",
    "InferenceProvider",
    "Prediction",
    "find_project_root",
    "load_detector",
    "resolve_path",
    "Label",
    "load_class_names",
    "parse_names_literal",
    "PALETTE",
    "draw_detections",
    "draw_highlight",
    "highlight_regions",
    "label_color",
    "label_color_bgr",
]
