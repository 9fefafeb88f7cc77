# embed_bench_reporter/core/view.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Sequence

from .model import IFRAME, METRICS, UNKNOWN, WEB_COMPONENT, Metric, RunRecord, StatBundle
from .normalize import to_int
from .stats import stats

ALL = "all"
IMPLEMENTATION_CHOICES: tuple[str, ...] = (IFRAME, WEB_COMPONENT, UNKNOWN, ALL)

@dataclass(frozen=True)
class ViewSelection:
    implementation: str = ALL
    instances: int | str = ALL

def _check_selectors(implementation: str, instances: int | str) -> None:
    if implementation not in IMPLEMENTATION_CHOICES:
        raise ValueError(f"unknown implementation selector: {implementation!r}")
    if instances != ALL and (isinstance(instances, bool) or not isinstance(instances, int)):
        raise ValueError(f"instance selector must be an int or {ALL!r}: {instances!r}")

def filter_runs(runs: Sequence[RunRecord], implementation: str = ALL,
                instances: int | str = ALL) -> tuple[RunRecord, ...]:
    """Subsequence of ``runs`` matching both selectors, order preserved."""
    _check_selectors(implementation, instances)
    return tuple(
        r for r in runs
        if (implementation == ALL or r.implementation == implementation)
        and (instances == ALL or r.instances == instances)
    )

def apply_view(runs: Sequence[RunRecord], view: ViewSelection) -> tuple[RunRecord, ...]:
    return filter_runs(runs, view.implementation, view.instances)

def prepare_view(global_cfg: dict) -> ViewSelection:
    """
    Read the ``view`` section of the config. Missing keys mean "all";
    instance counts may be given as numbers or digit strings.
    """
    view = (global_cfg or {}).get("view", {}) or {}

    impl = str(view.get("implementation", ALL) or ALL).strip().lower()

    raw_inst = view.get("instances", ALL)
    if raw_inst is None or str(raw_inst).strip().lower() == ALL:
        inst: int | str = ALL
    else:
        parsed = to_int(raw_inst)
        if parsed is None:
            raise ValueError(f"view.instances must be an integer or {ALL!r}: {raw_inst!r}")
        inst = parsed

    _check_selectors(impl, inst)
    return ViewSelection(implementation=impl, instances=inst)

def summarize_view(runs: Iterable[RunRecord], metrics: Sequence[Metric] = METRICS) -> dict[str, StatBundle]:
    """One StatBundle per metric over the given (usually filtered) runs."""
    runs = list(runs)
    return {m.key: stats([getattr(r, m.key) for r in runs]) for m in metrics}
