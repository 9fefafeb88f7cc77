# embed_bench_reporter/core/normalize.py
from __future__ import annotations
import math
from collections.abc import Mapping
from numbers import Real
from typing import Any

import numpy as np

_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)

def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers; bools, strings, None and NaN/inf are rejected."""
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, Real):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        # JSON integers beyond the float range
        return False

def as_mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}

def as_sequence(value: Any) -> list:
    # JSON arrays only; strings and objects count as "no samples"
    if isinstance(value, (list, tuple)):
        return list(value)
    return []

def to_float(value: Any) -> float | None:
    return float(value) if is_finite_number(value) else None

def to_int(value: Any) -> int | None:
    """
    Best-effort integer coercion for metadata fields.
    Accepts finite numbers and numeric strings ("5", "5.0", " 1700000000000 ").
    Values outside the int64 range count as missing.
    """
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            value = int(s)
        except ValueError:
            try:
                value = float(s)
            except ValueError:
                return None
    if not is_finite_number(value):
        return None
    n = int(value)
    return n if _INT64_MIN <= n <= _INT64_MAX else None

def to_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None
