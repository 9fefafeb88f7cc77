# embed_bench_reporter/core/compare.py
from __future__ import annotations
import math
from typing import Iterable, Literal, Sequence

from .grouping import group_runs
from .model import METRICS, ComparisonRow, InstanceBucket, Metric, RunRecord
from .stats import percentile

DeltaPolarity = Literal["lower", "higher", "neutral"]

def _median_for(runs: Sequence[RunRecord], key: str) -> float | None:
    return percentile([getattr(r, key) for r in runs], 50)

def pct_change(a: float | None, b: float | None) -> float | None:
    """(a - b) / b * 100, or None when either side is missing/non-finite or b == 0."""
    if a is None or b is None or not math.isfinite(a) or not math.isfinite(b) or b == 0:
        return None
    return (a - b) / b * 100.0

def compare_bucket(bucket: InstanceBucket, metrics: Sequence[Metric] = METRICS) -> list[ComparisonRow]:
    rows: list[ComparisonRow] = []
    for m in metrics:
        med_iframe = _median_for(bucket.iframe, m.key)
        med_wc = _median_for(bucket.web_component, m.key)
        delta = (med_iframe - med_wc) if (med_iframe is not None and med_wc is not None) else None
        rows.append(ComparisonRow(
            instances=bucket.instances,
            metric_key=m.key,
            median_a=med_iframe,
            median_b=med_wc,
            delta=delta,
            delta_percent=pct_change(med_iframe, med_wc),
        ))
    return rows

def compare_runs(runs: Iterable[RunRecord], metrics: Sequence[Metric] = METRICS) -> list[ComparisonRow]:
    """
    iframe vs web-component medians per (instance count, metric).

    ``delta`` is iframe minus web-component; positive means the iframe value
    is numerically larger. Whether that is better depends on the metric and
    is left to the caller. Buckets with an empty side still produce rows,
    with None medians/deltas.
    """
    rows: list[ComparisonRow] = []
    for bucket in group_runs(runs).values():
        rows.extend(compare_bucket(bucket, metrics))
    return rows

def delta_polarity(row: ComparisonRow) -> DeltaPolarity:
    """Direction of iframe relative to web-component, with no judgement attached."""
    if row.delta is None or row.delta == 0:
        return "neutral"
    return "lower" if row.delta < 0 else "higher"

def describe_delta(row: ComparisonRow, digits: int = 0) -> str:
    """Render e.g. "+30 (+37.5%)"; "–" when there is no delta."""
    if row.delta is None:
        text = "–"
    else:
        text = f"{'+' if row.delta >= 0 else ''}{row.delta:.{digits}f}"
    if row.delta_percent is not None:
        text += f" ({'+' if row.delta_percent >= 0 else ''}{row.delta_percent:.1f}%)"
    return text
