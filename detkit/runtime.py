from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from .errors import ModelNotLoadedError
from .postprocess import CropPostprocessor, DecodeConfig
from .types import DetectionCandidate, OutputTensor, RectSize


PathLike = Union[str, Path]
StatusListener = Callable[[bool], None]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, so `models/foo.onnx` resolves the same
    way from scripts, tests and notebooks.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, the project
      root otherwise.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class InferenceProvider(Protocol):
    """
    Capability interface over a native inference library.

    `infer` receives crop pixels (H, W, 3), the model input size as
    (width, height) and the tensor layout, and returns the raw output tensor.
    """

    def infer(self, pixels: np.ndarray, shape: Tuple[int, int], layout: str = "NCHW") -> OutputTensor:
        ...

    @property
    def input_shape(self) -> Tuple[int, ...]:
        ...

    @property
    def output_shape(self) -> Tuple[int, ...]:
        ...


@dataclass(frozen=True)
class PredictionTiming:
    started: float
    finished: float

    @property
    def elapsed_ms(self) -> float:
        return (self.finished - self.started) * 1000.0


@dataclass(frozen=True)
class Prediction:
    output: OutputTensor
    timing: PredictionTiming


class CropDetector:
    """
    Owns the inference provider and turns crop pixels into model-space
    candidates: infer -> decode -> per-class NMS.

    The provider can be injected directly or loaded later with `load()`;
    status listeners are notified whenever the loaded state changes.
    """

    def __init__(
        self,
        provider: Optional[InferenceProvider] = None,
        *,
        model_size: RectSize = RectSize(640, 640),
        layout: str = "NCHW",
        decode_cfg: DecodeConfig = DecodeConfig(),
        provider_factory: Optional[Callable[[Path], InferenceProvider]] = None,
    ):
        self.provider = provider
        self.model_size = model_size
        self.layout = layout
        self.post = CropPostprocessor(decode_cfg)
        self.model_path: Optional[Path] = None
        self._provider_factory = provider_factory or _default_provider_factory
        self._listeners: List[StatusListener] = []

    @property
    def loaded(self) -> bool:
        return self.provider is not None

    def add_status_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.loaded)

    def load(self, model_path: PathLike, *, root: Optional[PathLike] = "auto") -> None:
        resolved = resolve_path(model_path, root=root)
        self.model_path = resolved
        try:
            self.provider = self._provider_factory(resolved)
        except Exception:
            self.provider = None
            self._notify()
            raise
        self._notify()

    def unload(self) -> None:
        self.provider = None
        self._notify()

    def predict(self, pixels: np.ndarray) -> Prediction:
        if self.provider is None:
            raise ModelNotLoadedError("model not loaded")

        shape = (int(self.model_size.width), int(self.model_size.height))
        started = time.perf_counter()
        output = self.provider.infer(pixels, shape, self.layout)
        finished = time.perf_counter()
        return Prediction(output=output, timing=PredictionTiming(started, finished))

    def __call__(self, pixels: np.ndarray) -> List[DetectionCandidate]:
        return self.post.process(self.predict(pixels).output)


def _default_provider_factory(path: Path) -> InferenceProvider:
    from .backends.onnxruntime_backend import OnnxRuntimeBackend

    return OnnxRuntimeBackend(path)


def load_detector(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    decode_cfg: DecodeConfig = DecodeConfig(),
    model_size: Optional[RectSize] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> CropDetector:
    """
    Create a detector for an ONNX model on disk.

        det = load_detector("models/yolov8n.onnx")  # resolves from project root by default

    When `model_size` is None the model's own static input size is used,
    falling back to 640x640 for dynamic inputs.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Only .onnx models are supported, got '{resolved.suffix}'.")

    backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
        ),
    )
    detector = CropDetector(
        backend,
        model_size=model_size or backend.model_size,
        decode_cfg=decode_cfg,
    )
    detector.model_path = resolved
    return detector
