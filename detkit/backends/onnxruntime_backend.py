from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np

from ..metadata import parse_names_literal
from ..preprocess import to_blob
from ..types import OutputTensor, RectSize


PathLike = Union[str, Path]

DEFAULT_MODEL_SIZE = RectSize(640, 640)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


def _static_dims(shape: Sequence[object]) -> Tuple[int, ...]:
    # dynamic axes come back as strings or None; report them as -1
    return tuple(int(d) if isinstance(d, (int, np.integer)) else -1 for d in shape)


class OnnxRuntimeBackend:
    """
    `InferenceProvider` adapter over an onnxruntime InferenceSession.

    Takes crop pixels (H, W, 3) BGR, stretches them to the model input size
    and returns the primary output as an `OutputTensor`.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        inp = self.session.get_inputs()[0]
        out = self.session.get_outputs()[0]
        self.input_name = cfg.input_name or inp.name
        self.output_name = cfg.output_name or out.name
        self._input_shape = _static_dims(inp.shape)
        self._output_shape = _static_dims(out.shape)

    @property
    def input_shape(self) -> Tuple[int, ...]:
        return self._input_shape

    @property
    def output_shape(self) -> Tuple[int, ...]:
        return self._output_shape

    @property
    def model_size(self) -> RectSize:
        """Input (width, height) for NCHW models with static spatial dims."""

        if len(self._input_shape) == 4:
            h, w = self._input_shape[2], self._input_shape[3]
            if h > 0 and w > 0:
                return RectSize(w, h)
        return DEFAULT_MODEL_SIZE

    @property
    def class_names(self) -> Dict[int, str]:
        meta = self.session.get_modelmeta().custom_metadata_map
        raw = meta.get("names")
        return parse_names_literal(raw) if raw else {}

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, pixels: np.ndarray, shape: Tuple[int, int], layout: str = "NCHW") -> OutputTensor:
        blob, _ = to_blob(pixels, new_shape=shape, layout=layout)
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return OutputTensor.from_array(outputs[0])
