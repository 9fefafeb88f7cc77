# embed_bench_reporter/loaders/json_loader.py
from __future__ import annotations
from pathlib import Path
import json, logging

from ..core.model import RawRun
from ..utils.detect import discover_inputs

_LOG = logging.getLogger(__name__)

class RunStoreError(RuntimeError):
    """The run store could not be listed or one of its files could not be read."""

def load(path: Path) -> RawRun:
    """
    Read one run file. The payload is kept untyped; the source name is the
    file name, which metadata resolution may fall back on.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise RunStoreError(f"cannot read {path.name}: {e}") from e
    except json.JSONDecodeError as e:
        raise RunStoreError(f"{path.name} is not valid JSON: {e}") from e
    return RawRun(source_name=path.name, payload=payload)

def load_all(root: Path, recurse: bool = True) -> list[RawRun]:
    """All run files under ``root``. One bad file fails the whole batch."""
    try:
        detected = discover_inputs(root, recurse=recurse)
    except OSError as e:
        raise RunStoreError(f"cannot list run store {root}: {e}") from e
    runs = [load(item.path) for item in detected]
    _LOG.info("loaded %d run file(s) from %s", len(runs), root)
    return runs
