from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Tuple, Union

from .errors import ConfigurationError
from .types import ClassLabel


def load_class_names(metadata_path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class names from an Ultralytics-style `metadata.yaml`:

        names:
          0: cane
          1: cavallo
          ...

    Only the `names:` block is read; this keeps PyYAML out of the dependencies.
    """

    path = Path(metadata_path)
    if not path.exists():
        raise FileNotFoundError(f"Class metadata not found: {path}")

    names: Dict[int, str] = {}
    in_names = False

    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.rstrip()
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if stripped == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # a new top-level key ends the names block
            if not raw[:1].isspace() and not stripped[:1].isdigit():
                break

            if ":" not in stripped:
                continue
            left, right = stripped.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def class_labels_from_names(names: Mapping[int, str]) -> Tuple[ClassLabel, ...]:
    """Order a `{class_id: name}` mapping into labels indexed by class id."""

    if not names:
        raise ConfigurationError("Class metadata defines no classes")
    ids = sorted(names)
    if ids != list(range(len(ids))):
        raise ConfigurationError(f"Class ids must be contiguous from 0, got {ids}")
    return tuple(ClassLabel(name=names[i]) for i in ids)
