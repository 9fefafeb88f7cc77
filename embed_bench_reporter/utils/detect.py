# embed_bench_reporter/utils/detect.py
from __future__ import annotations
from pathlib import Path
from dataclasses import dataclass
from typing import Literal

DetectedKind = Literal["json", "unknown"]

@dataclass(frozen=True)
class DetectedItem:
    path: Path        # actual path on disk
    kind: DetectedKind

def detect_kind(p: Path) -> DetectedKind:
    """
    Classify a single path.
    - .json -> 'json' (one benchmark run per file)
    else    -> 'unknown'
    """
    if p.suffix.lower() == ".json":
        return "json"
    return "unknown"

def discover_inputs(root: Path, recurse: bool = True) -> list[DetectedItem]:
    """
    If 'root' is a file -> return that one item (if known).
    If 'root' is a folder -> walk (optionally recursively) and collect run files.
    A missing root raises FileNotFoundError.
    """
    if not root.exists():
        raise FileNotFoundError(f"run store not found: {root}")

    items: list[DetectedItem] = []
    if root.is_file():
        kind = detect_kind(root)
        if kind != "unknown":
            items.append(DetectedItem(root.resolve(), kind))
        return items

    it = root.rglob("*") if recurse else root.glob("*")
    for p in it:
        if not p.is_file():
            continue
        kind = detect_kind(p)
        if kind != "unknown":
            items.append(DetectedItem(p.resolve(), kind))

    # deterministic ordering
    items.sort(key=lambda x: str(x.path))
    return items
