from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Dict, List, Mapping


@dataclass(frozen=True)
class Label:
    idx: int
    name: str


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from a lightweight `metadata.yaml` file:

        names:
          0: person
          1: bicycle
          ...

    Only the `names:` block is read; everything else is skipped, so no YAML
    parser is needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # a new top-level key ends the block
            if not raw[:1].isspace() and not line[:1].isdigit():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def parse_names_literal(text: str) -> Dict[int, str]:
    """
    Parse the `names` entry exported into ONNX model metadata, e.g.
    "{0: 'person', 1: 'bicycle'}". Anything else yields an empty mapping.
    """

    try:
        value = ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return {}
    if isinstance(value, (list, tuple)):
        value = dict(enumerate(value))
    if not isinstance(value, dict):
        return {}
    names: Dict[int, str] = {}
    for key, name in value.items():
        try:
            names[int(key)] = str(name)
        except (TypeError, ValueError):
            continue
    return names


def as_labels(names: Mapping[int, str]) -> List[Label]:
    return [Label(idx=int(k), name=str(v)) for k, v in sorted(names.items())]
