# embed_bench_reporter/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal, Mapping, Sequence
import numpy as np
import pandas as pd
from pandas.errors import OutOfBoundsDatetime
from scipy.io import savemat

from .compare import delta_polarity, describe_delta
from .model import METRICS, ComparisonRow, RunRecord, StatBundle

ReportFormat = Literal["csv", "mat", "both"]

RUN_COLUMNS = [
    "file", "captured_at", "timestamp", "implementation", "instances",
    "load_time_ms", "first_paint_ms", "fcp_ms", "dom_interactive_ms", "dom_complete_ms",
    "avg_mem_mb", "avg_fps",
]
SUMMARY_COLUMNS = ["metric", "label", "p50", "p95", "p99", "std_dev", "min", "max", "count"]
COMPARISON_COLUMNS = [
    "instances", "metric", "label", "iframe_p50", "web_component_p50",
    "delta", "delta_percent", "delta_text", "iframe_vs_web_component",
]
_STRING_COLUMNS = {
    "file", "captured_at", "implementation", "metric", "label", "delta_text", "iframe_vs_web_component",
}

_LABELS = {m.key: m for m in METRICS}

def _captured_at(timestamp_ms: int) -> str:
    # blank when pandas cannot represent the instant
    try:
        ts = pd.to_datetime(timestamp_ms, unit="ms")
        if pd.isna(ts):
            return ""
        return ts.strftime("%Y-%m-%d %H:%M:%S")
    except (OutOfBoundsDatetime, OverflowError, ValueError, NotImplementedError):
        return ""

def _as_double(value) -> float:
    try:
        return np.nan if pd.isna(value) else float(value)
    except (TypeError, ValueError, OverflowError):
        return np.nan

def build_runs_frame(runs: Sequence[RunRecord]) -> pd.DataFrame:
    rows = [{
        "file": r.file_label,
        "captured_at": _captured_at(r.timestamp),
        "timestamp": r.timestamp,
        "implementation": r.implementation,
        "instances": r.instances,
        "load_time_ms": r.load_time,
        "first_paint_ms": r.first_paint,
        "fcp_ms": r.fcp,
        "dom_interactive_ms": r.dom_interactive,
        "dom_complete_ms": r.dom_complete,
        "avg_mem_mb": r.avg_mem_mb,
        "avg_fps": r.avg_fps,
    } for r in runs]
    df = pd.DataFrame(rows, columns=RUN_COLUMNS)
    df["instances"] = pd.to_numeric(df["instances"], errors="coerce").astype("Int64")
    return df

def build_summary_frame(summary: Mapping[str, StatBundle]) -> pd.DataFrame:
    rows = []
    for key, b in summary.items():
        metric = _LABELS.get(key)
        rows.append({
            "metric": key,
            "label": metric.label if metric else key,
            "p50": b.p50, "p95": b.p95, "p99": b.p99,
            "std_dev": b.std_dev, "min": b.min, "max": b.max,
            "count": b.count,
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

def build_comparison_frame(rows: Sequence[ComparisonRow]) -> pd.DataFrame:
    out = []
    for row in rows:
        metric = _LABELS.get(row.metric_key)
        digits = metric.digits if metric else 0
        out.append({
            "instances": row.instances,
            "metric": row.metric_key,
            "label": metric.label if metric else row.metric_key,
            "iframe_p50": row.median_a,
            "web_component_p50": row.median_b,
            "delta": row.delta,
            "delta_percent": row.delta_percent,
            "delta_text": describe_delta(row, digits),
            "iframe_vs_web_component": delta_polarity(row),
        })
    df = pd.DataFrame(out, columns=COMPARISON_COLUMNS)
    df["instances"] = pd.to_numeric(df["instances"], errors="coerce").astype("Int64")
    return df

def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")

def _to_mat_cellstr(seq: list) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr

def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with fields matching the CSV columns.
    Strings become cell arrays (Nx1), numerics become double (Nx1) with NaN for missing.
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)

    def numcol(name: str) -> np.ndarray:
        return np.asarray([_as_double(v) for v in df_out[name].tolist()], dtype=float).reshape(-1, 1)

    def strcol(name: str) -> np.ndarray:
        return _to_mat_cellstr(df_out[name].tolist())

    mat_struct = {
        col: (strcol(col) if col in _STRING_COLUMNS else numcol(col))
        for col in df_out.columns
    }
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")

def write_frame(df_out: pd.DataFrame,
                out_base: Path,
                title: str,
                fmt: ReportFormat = "csv",
                mat_variable: str = "report") -> None:
    """
    Write a report frame in the requested format.
    - out_base is a *base path without extension* (e.g., .../comparison)
    - fmt: "csv" | "mat" | "both"
    - mat_variable: MATLAB variable name of the struct
    An empty frame replaces any earlier report at the same base: the CSV is
    written header-only and a stale .mat is removed.
    """
    if df_out.empty:
        out_base.with_suffix(".mat").unlink(missing_ok=True)
        if fmt in ("csv", "both"):
            _write_csv(df_out, out_base.with_suffix(".csv"), f"{title} (no data)")
        else:
            out_base.with_suffix(".csv").unlink(missing_ok=True)
        return
    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
    if fmt in ("mat", "both"):
        _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)

def write_runs_report(runs: Sequence[RunRecord], out_base: Path, title: str,
                      fmt: ReportFormat = "csv", mat_variable: str = "runs") -> None:
    write_frame(build_runs_frame(runs), out_base, title, fmt=fmt, mat_variable=mat_variable)

def write_summary_report(summary: Mapping[str, StatBundle], out_base: Path, title: str,
                         fmt: ReportFormat = "csv", mat_variable: str = "summary") -> None:
    write_frame(build_summary_frame(summary), out_base, title, fmt=fmt, mat_variable=mat_variable)

def write_comparison_report(rows: Sequence[ComparisonRow], out_base: Path, title: str,
                            fmt: ReportFormat = "csv", mat_variable: str = "comparison") -> None:
    write_frame(build_comparison_frame(rows), out_base, title, fmt=fmt, mat_variable=mat_variable)
