# embed_bench_reporter/core/pipeline.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, Iterable

from .compare import compare_runs
from .model import RunCollection, RawRun
from .reports import write_comparison_report, write_runs_report, write_summary_report
from .summarize import build_collection
from .view import apply_view, prepare_view, summarize_view

_LOG = logging.getLogger(__name__)

class ReloadError(RuntimeError):
    """A reload failed as a whole; the previous collection is still current."""

class RunBoard:
    """
    Holds the current run collection snapshot.

    ``reload`` builds a complete replacement before swapping it in, so readers
    only ever see the old or the new collection. On failure the old one stays
    and ``last_error`` says why.
    """

    def __init__(self, collection: RunCollection = ()):
        self._collection: RunCollection = tuple(collection)
        self.last_error: str | None = None

    @property
    def collection(self) -> RunCollection:
        return self._collection

    @property
    def has_data(self) -> bool:
        return bool(self._collection)

    def reload(self, fetch: Callable[[], Iterable[RawRun]]) -> RunCollection:
        try:
            fresh = build_collection(list(fetch()))
        except Exception as e:
            self.last_error = f"Error loading data: {e}"
            _LOG.warning("reload failed, keeping %d previous run(s): %s", len(self._collection), e)
            raise ReloadError(str(e)) from e
        self._collection = fresh
        self.last_error = None
        return fresh

def run_pipeline(runs: RunCollection, cfg: dict, out_root: Path) -> None:
    """
    Write the report set for one collection snapshot:
      runs.*        filtered run table (view section of cfg)
      summary.*     p50/p95/p99/std/min/max per metric over the filtered runs
      comparison.*  iframe vs web-component medians over all runs
    """
    view = prepare_view(cfg)
    fmt = str(((cfg or {}).get("reports") or {}).get("format", "csv")).lower()
    if fmt not in ("csv", "mat", "both"):
        raise ValueError(f"reports.format must be csv, mat or both: {fmt!r}")

    filtered = apply_view(runs, view)
    label = f"{view.implementation}/{view.instances}"
    if not filtered:
        print(f"[INFO] view {label}: no runs match; summary is empty.")

    out_root.mkdir(parents=True, exist_ok=True)
    write_runs_report(filtered, out_root / "runs", f"runs ({label})", fmt=fmt)
    write_summary_report(summarize_view(filtered), out_root / "summary", f"summary ({label})", fmt=fmt)

    # comparison spans the whole collection, not the view
    rows = compare_runs(runs)
    if not rows:
        print("[INFO] no data available for comparison yet.")
    write_comparison_report(rows, out_root / "comparison", "iframe vs web-component", fmt=fmt)
