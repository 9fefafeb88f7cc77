# embed_bench_reporter/core/grouping.py
from __future__ import annotations
from collections import defaultdict
from types import MappingProxyType
from typing import Iterable, Mapping

from .model import IFRAME, WEB_COMPONENT, InstanceBucket, RunRecord

def _bucket_order(instances: int | None) -> tuple[int, int]:
    # ascending counts, unresolved bucket last
    return (1, 0) if instances is None else (0, instances)

def group_runs(runs: Iterable[RunRecord]) -> Mapping[int | None, InstanceBucket]:
    """
    Partition runs by instance count, then by implementation.

    Every instance count seen in ``runs`` gets a bucket (``None`` for
    unresolved counts). Runs of ``unknown`` implementation open their bucket
    but are not placed in either side. The result is rebuilt on every call
    and is read-only.
    """
    sides: dict[int | None, dict[str, list[RunRecord]]] = defaultdict(
        lambda: {IFRAME: [], WEB_COMPONENT: []}
    )
    for r in runs:
        bucket = sides[r.instances]
        if r.implementation in bucket:
            bucket[r.implementation].append(r)

    ordered = {
        inst: InstanceBucket(
            instances=inst,
            iframe=tuple(sides[inst][IFRAME]),
            web_component=tuple(sides[inst][WEB_COMPONENT]),
        )
        for inst in sorted(sides, key=_bucket_order)
    }
    return MappingProxyType(ordered)
