"""Colour assignment for views.

Colours come from matplotlib's ``tab10`` qualitative palette and are handed
out in first-request order, cycling once the palette is exhausted.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import matplotlib.colors as mcolors
import matplotlib.pyplot as plt

from flowviz.config import ColumnMapping
from flowviz.log_config import get_logger
from flowviz.normalizer import cell_text

logger = get_logger(__name__)

PALETTE_NAME = "tab10"
FALLBACK_COLOR = "#cccccc"


def palette(name: str = PALETTE_NAME) -> list[str]:
    """Return the named qualitative colormap as hex strings."""
    cmap = plt.get_cmap(name)
    return [mcolors.to_hex(cmap(i)) for i in range(cmap.N)]


class OrdinalColors:
    """Map keys to palette colours in the order keys are first requested."""

    def __init__(self, colors: list[str] | None = None) -> None:
        self._colors = colors or palette()
        self._assigned: dict[str, str] = {}

    def __call__(self, key: str) -> str:
        color = self._assigned.get(key)
        if color is None:
            color = self._colors[len(self._assigned) % len(self._colors)]
            self._assigned[key] = color
        return color

    @property
    def assigned(self) -> dict[str, str]:
        return dict(self._assigned)


def resolve_color_groups(
    rows: Iterable[Mapping[str, Any]], mapping: ColumnMapping, color_by: str | None
) -> dict[str, str]:
    """Return node name -> colour-by attribute value.

    A node's attribute is the first non-empty ``color_by`` cell of a row
    where it is the destination; nodes that never appear as a destination
    with a value fall back to the first row where they are the origin.
    """
    if not color_by or not mapping.is_complete:
        return {}

    as_target: dict[str, str] = {}
    as_source: dict[str, str] = {}
    for row in rows:
        group = cell_text(row.get(color_by))
        if not group:
            continue
        target = cell_text(row.get(mapping.destination))
        if target:
            as_target.setdefault(target, group)
        source = cell_text(row.get(mapping.origin))
        if source:
            as_source.setdefault(source, group)

    groups = dict(as_target)
    for name, group in as_source.items():
        groups.setdefault(name, group)
    logger.debug(
        f"Resolved '{color_by}' groups for {len(groups):,} nodes "
        f"({len(set(groups.values()))} distinct values)"
    )
    return groups


def group_palette(groups: Mapping[str, str]) -> dict[str, str]:
    """Return group value -> colour, assigned in sorted group order."""
    scale = OrdinalColors()
    return {group: scale(group) for group in sorted(set(groups.values()))}
