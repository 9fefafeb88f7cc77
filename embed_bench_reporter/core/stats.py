# embed_bench_reporter/core/stats.py
from __future__ import annotations
from typing import Any, Iterable

import numpy as np

from .model import StatBundle
from .normalize import is_finite_number

def finite_values(series: Iterable[Any]) -> np.ndarray:
    """Finite numeric entries of ``series`` as a new float array (input untouched)."""
    vals = [float(v) for v in (series if series is not None else ()) if is_finite_number(v)]
    return np.asarray(vals, dtype=float)

def percentile(series: Iterable[Any], p: float) -> float | None:
    """
    Percentile with linear interpolation between closest ranks:
    rank = p/100 * (n-1), blend floor/ceil neighbours by the fractional part.
    p50 of [1, 2, 3, 4] is 2.5.
    """
    if not 0 <= p <= 100:
        raise ValueError(f"percentile rank out of range: {p}")
    vals = np.sort(finite_values(series))
    if vals.size == 0:
        return None
    return float(np.percentile(vals, p, method="linear"))

def mean(series: Iterable[Any]) -> float | None:
    vals = finite_values(series)
    if vals.size == 0:
        return None
    return float(np.mean(vals))

def std_dev(series: Iterable[Any]) -> float | None:
    """Population standard deviation (divide by n); None below two values."""
    vals = finite_values(series)
    if vals.size < 2:
        return None
    return float(np.std(vals, ddof=0))

def minimum(series: Iterable[Any]) -> float | None:
    vals = finite_values(series)
    return float(np.min(vals)) if vals.size else None

def maximum(series: Iterable[Any]) -> float | None:
    vals = finite_values(series)
    return float(np.max(vals)) if vals.size else None

def stats(series: Iterable[Any]) -> StatBundle:
    vals = finite_values(series)
    return StatBundle(
        p50=percentile(vals, 50),
        p95=percentile(vals, 95),
        p99=percentile(vals, 99),
        std_dev=std_dev(vals),
        min=minimum(vals),
        max=maximum(vals),
        count=int(vals.size),
    )
