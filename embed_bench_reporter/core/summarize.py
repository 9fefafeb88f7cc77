# embed_bench_reporter/core/summarize.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .metadata import wall_clock_ms, file_label, resolve_metadata
from .model import RawRun, RunCollection, RunRecord
from .normalize import as_mapping, as_sequence, to_float
from .stats import mean

_LOG = logging.getLogger(__name__)

BYTES_PER_MB = 1048576

@dataclass(frozen=True)
class RunSummary:
    load_time: float
    first_paint: float | None
    fcp: float | None
    dom_interactive: float | None
    dom_complete: float | None
    avg_mem_mb: float | None
    avg_fps: float | None

def summarize_payload(payload: Any) -> RunSummary:
    data = as_mapping(payload)
    perf = as_mapping(data.get("performance"))

    avg_mem_bytes = mean(as_sequence(data.get("memoryUsage")))
    load_time = to_float(data.get("loadTime"))

    return RunSummary(
        load_time=load_time if load_time is not None else 0.0,
        first_paint=to_float(perf.get("firstPaint")),
        fcp=to_float(perf.get("firstContentfulPaint")),
        dom_interactive=to_float(perf.get("domInteractive")),
        dom_complete=to_float(perf.get("domComplete")),
        avg_mem_mb=(avg_mem_bytes / BYTES_PER_MB) if avg_mem_bytes is not None else None,
        avg_fps=mean(as_sequence(data.get("frameRate"))),
    )

def build_run_record(raw: RawRun, now_ms: Callable[[], int] = wall_clock_ms) -> RunRecord:
    meta = resolve_metadata(raw, now_ms=now_ms)
    summary = summarize_payload(raw.payload)
    return RunRecord(
        file_label=file_label(raw.source_name),
        implementation=meta.implementation,
        instances=meta.instances,
        timestamp=meta.timestamp,
        load_time=summary.load_time,
        first_paint=summary.first_paint,
        fcp=summary.fcp,
        dom_interactive=summary.dom_interactive,
        dom_complete=summary.dom_complete,
        avg_mem_mb=summary.avg_mem_mb,
        avg_fps=summary.avg_fps,
    )

def build_collection(raws: Iterable[RawRun], now_ms: Callable[[], int] = wall_clock_ms) -> RunCollection:
    """Derive one record per raw run and order them most recent first."""
    records = [build_run_record(raw, now_ms=now_ms) for raw in raws]
    records.sort(key=lambda r: r.timestamp, reverse=True)
    _LOG.debug("built collection of %d run(s)", len(records))
    return tuple(records)
