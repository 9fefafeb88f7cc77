# embed_bench_reporter/core/model.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Literal

Implementation = Literal["iframe", "web-component", "unknown"]

IFRAME = "iframe"
WEB_COMPONENT = "web-component"
UNKNOWN = "unknown"
KNOWN_IMPLEMENTATIONS: tuple[str, ...] = (IFRAME, WEB_COMPONENT)

@dataclass(frozen=True)
class RawRun:
    source_name: str          # as listed by the run store, may carry a path and "?query"
    payload: Any              # untyped JSON tree, read only at the summarize/resolve boundary

@dataclass(frozen=True)
class RunRecord:
    file_label: str                   # basename without query, display only
    implementation: Implementation
    instances: int | None             # None when unresolvable
    timestamp: int                    # epoch ms
    load_time: float = 0.0
    first_paint: float | None = None
    fcp: float | None = None
    dom_interactive: float | None = None
    dom_complete: float | None = None
    avg_mem_mb: float | None = None
    avg_fps: float | None = None

# most recent first
RunCollection = tuple[RunRecord, ...]

@dataclass(frozen=True)
class StatBundle:
    p50: float | None
    p95: float | None
    p99: float | None
    std_dev: float | None
    min: float | None
    max: float | None
    count: int

@dataclass(frozen=True)
class InstanceBucket:
    instances: int | None
    iframe: RunCollection = ()
    web_component: RunCollection = ()

@dataclass(frozen=True)
class ComparisonRow:
    instances: int | None
    metric_key: str
    median_a: float | None    # iframe
    median_b: float | None    # web-component
    delta: float | None       # median_a - median_b
    delta_percent: float | None

@dataclass(frozen=True)
class Metric:
    key: str        # RunRecord attribute
    label: str
    digits: int     # display rounding

METRICS: tuple[Metric, ...] = (
    Metric("load_time", "Load (ms)", 0),
    Metric("fcp", "FCP (ms)", 0),
    Metric("avg_mem_mb", "Memory (MB)", 2),
    Metric("avg_fps", "FPS", 1),
)
