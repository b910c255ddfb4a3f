from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from detkit.types import RectSize


@dataclass(frozen=True)
class InspectorProfile:
    schema_version: int = 1
    # None means "use the model's own input size".
    model_width: Optional[int] = None
    model_height: Optional[int] = None
    capture_width: int = 640
    capture_height: int = 640
    conf_threshold: float = 0.5
    iou_threshold: float = 0.5
    zoom_rate: float = 0.0001
    max_scale: float = 10.0
    initial_fit: float = 0.75
    label_alpha: float = 0.2
    highlight_alpha: float = 0.3
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("inspector profile schema_version must be 1")
        if (self.model_width is None) != (self.model_height is None):
            raise ValueError("model_width and model_height must be set together")
        for key in ("model_width", "model_height", "capture_width", "capture_height"):
            value = getattr(self, key)
            if value is not None and value <= 0:
                raise ValueError(f"{key} must be > 0")
        for key in ("conf_threshold", "iou_threshold", "label_alpha", "highlight_alpha"):
            value = getattr(self, key)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{key} must be in [0, 1]")
        if self.zoom_rate <= 0:
            raise ValueError("zoom_rate must be > 0")
        if self.max_scale <= 0:
            raise ValueError("max_scale must be > 0")
        if self.initial_fit <= 0:
            raise ValueError("initial_fit must be > 0")

    @property
    def model_size(self) -> Optional[RectSize]:
        if self.model_width is None or self.model_height is None:
            return None
        return RectSize(self.model_width, self.model_height)

    @property
    def capture_size(self) -> RectSize:
        return RectSize(self.capture_width, self.capture_height)


_INT_KEYS = ("schema_version", "model_width", "model_height", "capture_width", "capture_height")
_FLOAT_KEYS = (
    "conf_threshold",
    "iou_threshold",
    "zoom_rate",
    "max_scale",
    "initial_fit",
    "label_alpha",
    "highlight_alpha",
)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_inspector_profile(path: Path) -> InspectorProfile:
    if not path.exists():
        raise FileNotFoundError(f"Inspector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid inspector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Inspector profile must be a JSON object")

    allowed = set(_INT_KEYS) | set(_FLOAT_KEYS) | {"notes"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown inspector profile keys: {unknown}")
    if "schema_version" not in payload:
        raise ValueError("Missing required key: schema_version")

    kwargs: Dict[str, Any] = {}
    for key in _INT_KEYS:
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in _FLOAT_KEYS:
        if key in payload:
            kwargs[key] = _require_number(payload, key)

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string if provided")
    kwargs["notes"] = notes

    return InspectorProfile(**kwargs)
