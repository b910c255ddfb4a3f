from __future__ import annotations


class InvalidArgumentError(ValueError):
    """A value passed to the engine is outside its valid domain (e.g. threshold not in [0, 1])."""


class InvalidStateError(RuntimeError):
    """An operation was attempted before its inputs were initialized (no image, scale <= 0, ...)."""


class ModelNotLoadedError(RuntimeError):
    """Inference was requested before a model was loaded."""


def require_unit_interval(value: float, name: str) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise InvalidArgumentError(f"{name} must be in [0, 1], got {value!r}")
    return value
