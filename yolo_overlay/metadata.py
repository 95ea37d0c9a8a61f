from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union


PathLike = Union[str, Path]


def load_labels(path: PathLike) -> List[str]:
    """
    Load class names, index = class id.

    Two formats are understood:

    - `labels.txt`: one name per line. Reading stops at the first empty line,
      so trailing notes after a blank separator are ignored.
    - `metadata.yaml`: the lightweight exporter mapping

        names:
          0: person
          1: bicycle
          ...

    Ids in the yaml mapping must be contiguous from 0.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Labels file not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        names = _load_yaml_names(p)
        expected = list(range(len(names)))
        if sorted(names) != expected:
            raise ValueError(f"Class ids in {p} must be contiguous from 0, got {sorted(names)}")
        return [names[i] for i in expected]

    labels: List[str] = []
    with p.open("r", encoding="utf-8") as f:
        for raw in f:
            line = raw.rstrip("\r\n")
            if not line:
                break
            labels.append(line)
    return labels


def _load_yaml_names(path: Path) -> Dict[int, str]:
    # Avoids a PyYAML dependency for a two-level mapping.
    names: Dict[int, str] = {}
    in_names = False

    with path.open("r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            if not raw.startswith((" ", "\t")):
                # next top-level key ends the mapping
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
