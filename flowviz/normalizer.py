"""Row normalization: raw row + column roles -> (source, target, weight)."""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, NamedTuple

DEFAULT_WEIGHT = 1.0

# Leading decimal number, the way spreadsheet-exported text like "12 kg" or
# "3.5e2" is read as a number.
_LEADING_FLOAT = re.compile(
    r"^[+-]?(?:inf(?:inity)?|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.IGNORECASE,
)


class NormalizedRow(NamedTuple):
    """A row that produced a usable directed relationship."""

    source: str
    target: str
    weight: float


def cell_text(value: Any) -> str:
    """Return the trimmed string form of a cell, ``""`` for missing values."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_number(value: Any) -> float | None:
    """Parse a cell as a float, or return None when it has no numeric prefix.

    Numbers pass through; strings are read up to the end of their leading
    numeric part, so ``"12 units"`` parses as 12.0 and ``"n/a"`` fails.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        fval = float(value)
        return None if math.isnan(fval) else fval
    match = _LEADING_FLOAT.match(str(value).strip())
    if match is None:
        return None
    return float(match.group(0))


def parse_weight(value: Any) -> float:
    """Parse a weight cell, falling back to 1 when it isn't a number.

    Zero and infinite weights are kept as parsed.
    """
    weight = parse_number(value)
    if weight is None:
        return DEFAULT_WEIGHT
    return weight


def normalize_row(
    row: Mapping[str, Any],
    origin_col: str,
    dest_col: str,
    weight_col: str | None = None,
    node_registry: set[str] | None = None,
) -> NormalizedRow | None:
    """Turn a raw row into a (source, target, weight) triple.

    Args:
        row: Column name -> cell value.
        origin_col: Column holding the source node name.
        dest_col: Column holding the target node name.
        weight_col: Optional column holding the weight; without it every row
            weighs 1.
        node_registry: Optional set that receives ``source`` and ``target``
            of every accepted row.

    Returns:
        The normalized triple, or None if source or target is empty after
        trimming. Rejected rows are expected data sparsity, not errors.
    """
    source = cell_text(row.get(origin_col))
    target = cell_text(row.get(dest_col))
    if not source or not target:
        return None

    weight = parse_weight(row.get(weight_col)) if weight_col else DEFAULT_WEIGHT

    if node_registry is not None:
        node_registry.add(source)
        node_registry.add(target)
    return NormalizedRow(source, target, weight)
