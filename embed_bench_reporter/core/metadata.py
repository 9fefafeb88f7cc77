# embed_bench_reporter/core/metadata.py
from __future__ import annotations
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from .model import KNOWN_IMPLEMENTATIONS, UNKNOWN, RawRun
from .normalize import as_mapping, to_int, to_str

_LOG = logging.getLogger(__name__)

# <iframe|web-component>-<instances>-instances-<unix ms>.json
_STRUCTURED_NAME = re.compile(r"^(iframe|web-component)-(\d+)-instances-(\d+)\.json$", re.IGNORECASE)
_TRAILING_TIMESTAMP = re.compile(r"(\d+)\.json$", re.IGNORECASE)
_JSON_EXT = re.compile(r"\.json$", re.IGNORECASE)

@dataclass(frozen=True)
class ResolvedMeta:
    implementation: str
    instances: int | None
    timestamp: int

@dataclass(frozen=True)
class _Source:
    meta: dict
    base: str   # file label

Strategy = Callable[[_Source], Optional[Any]]

def file_label(source_name: str) -> str:
    """Basename of a listed run file, without any "?query" suffix."""
    full = str(source_name or "")
    name = full.split("/")[-1] or full
    return name.split("?")[0].strip()

# ---------- embedded _meta ----------
def _impl_from_meta(src: _Source) -> str | None:
    impl = to_str(src.meta.get("implementation"))
    return impl.lower() if impl else None

def _instances_from_meta(src: _Source) -> int | None:
    return to_int(src.meta.get("instances"))

def _timestamp_from_meta(src: _Source) -> int | None:
    return to_int(src.meta.get("timestamp"))

# ---------- structured filename ----------
def _structured(src: _Source) -> re.Match | None:
    return _STRUCTURED_NAME.match(src.base.lower())

def _impl_from_pattern(src: _Source) -> str | None:
    m = _structured(src)
    return m.group(1) if m else None

def _instances_from_pattern(src: _Source) -> int | None:
    m = _structured(src)
    return to_int(m.group(2)) if m else None

def _timestamp_from_pattern(src: _Source) -> int | None:
    m = _structured(src)
    return to_int(m.group(3)) if m else None

# ---------- loose dash-split fallback ----------
def _tokens(src: _Source) -> list[str]:
    return _JSON_EXT.sub("", src.base).split("-")

def _impl_from_tokens(src: _Source) -> str | None:
    candidate = _tokens(src)[0].lower()
    return candidate if candidate in KNOWN_IMPLEMENTATIONS else None

def _instances_from_tokens(src: _Source) -> int | None:
    parts = _tokens(src)
    return to_int(parts[1]) if len(parts) > 1 else None

def _timestamp_from_tokens(src: _Source) -> int | None:
    m = _TRAILING_TIMESTAMP.search(src.base)
    return to_int(m.group(1)) if m else None

IMPLEMENTATION_STRATEGIES: tuple[Strategy, ...] = (_impl_from_meta, _impl_from_pattern, _impl_from_tokens)
INSTANCES_STRATEGIES: tuple[Strategy, ...] = (_instances_from_meta, _instances_from_pattern, _instances_from_tokens)
TIMESTAMP_STRATEGIES: tuple[Strategy, ...] = (_timestamp_from_meta, _timestamp_from_pattern, _timestamp_from_tokens)

def _first(strategies: Sequence[Strategy], src: _Source) -> Any:
    for strategy in strategies:
        value = strategy(src)
        if value is not None:
            return value
    return None

def wall_clock_ms() -> int:
    return int(time.time() * 1000)

def resolve_metadata(raw: RawRun, now_ms: Callable[[], int] = wall_clock_ms) -> ResolvedMeta:
    """
    Resolve (implementation, instances, timestamp) for one raw run.

    Each field walks its own strategy chain: embedded ``_meta`` → structured
    filename → loose dash-split filename. Whatever is still missing falls back
    to ``unknown`` / ``None`` / wall-clock time. Never raises.
    """
    src = _Source(meta=dict(as_mapping(as_mapping(raw.payload).get("_meta"))),
                  base=file_label(raw.source_name))

    implementation = _first(IMPLEMENTATION_STRATEGIES, src) or UNKNOWN
    instances = _first(INSTANCES_STRATEGIES, src)
    timestamp = _first(TIMESTAMP_STRATEGIES, src)
    if timestamp is None:
        timestamp = now_ms()
        _LOG.debug("no timestamp for %r; using resolution time", src.base)

    # terminal guard: _meta may carry anything
    if implementation not in KNOWN_IMPLEMENTATIONS:
        _LOG.debug("implementation %r of %r collapsed to unknown", implementation, src.base)
        implementation = UNKNOWN

    return ResolvedMeta(implementation=implementation, instances=instances, timestamp=int(timestamp))
