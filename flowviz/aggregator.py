"""Edge aggregation: fold rows into a canonical weighted directed edge list.

Edges are keyed by the ordered pair ``(source, target)``; A->B and B->A are
distinct. The output order is the order in which each pair was first seen in
the rows. That ordering is part of the contract: ties in later value sorts
fall back to it, and re-aggregating the same rows reproduces it exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from flowviz.config import ColumnMapping
from flowviz.log_config import get_logger
from flowviz.normalizer import normalize_row

logger = get_logger(__name__)


def edge_key(source: str, target: str) -> str:
    """Return the identity key of the directed pair (source, target)."""
    return f"{source}|{target}"


@dataclass
class Edge:
    """Aggregated directed relationship.

    Attributes:
        source: Origin node name.
        target: Destination node name.
        value: Sum of per-row weights.
        count: Number of rows contributing to this pair (always >= 1).
    """

    source: str
    target: str
    value: float
    count: int = 1

    @property
    def key(self) -> str:
        return edge_key(self.source, self.target)


@dataclass(frozen=True)
class AggregationResult:
    """Output of one aggregation pass.

    Attributes:
        edges: Aggregated edges in first-seen order.
        nodes: Unique node names registered by accepted rows, first-seen order.
        rows_total: Number of rows examined.
        rows_used: Rows that produced a (source, target) pair.
    """

    edges: tuple[Edge, ...] = ()
    nodes: tuple[str, ...] = ()
    rows_total: int = 0
    rows_used: int = 0

    @property
    def rows_skipped(self) -> int:
        return self.rows_total - self.rows_used

    @property
    def total_weight(self) -> float:
        return float(sum(e.value for e in self.edges))

    @property
    def is_empty(self) -> bool:
        return not self.edges


def _ordered_nodes(edges: Iterable[Edge]) -> tuple[str, ...]:
    # A node's first row also introduces a new pair, so walking the
    # first-seen edge list reproduces the nodes' first-seen row order.
    ordered: dict[str, None] = {}
    for edge in edges:
        ordered.setdefault(edge.source, None)
        ordered.setdefault(edge.target, None)
    return tuple(ordered)


def aggregate_edges(
    rows: Iterable[Mapping[str, Any]], mapping: ColumnMapping
) -> AggregationResult:
    """Aggregate rows into unique directed edges in a single pass.

    The first row of a pair creates ``Edge(value=weight, count=1)``; each
    later row of the same pair adds its weight to ``value`` and 1 to
    ``count``. Rows with an empty source or target are skipped.

    Args:
        rows: Row mappings (column name -> cell value).
        mapping: Column roles; only origin, destination and weight are used.

    Returns:
        AggregationResult with edges in first-seen order.
    """
    edges_by_key: dict[tuple[str, str], Edge] = {}
    nodes: set[str] = set()
    rows_total = 0
    rows_used = 0

    for row in rows:
        rows_total += 1
        triple = normalize_row(
            row, mapping.origin, mapping.destination, mapping.weight, nodes
        )
        if triple is None:
            continue
        rows_used += 1

        key = (triple.source, triple.target)
        edge = edges_by_key.get(key)
        if edge is None:
            edges_by_key[key] = Edge(triple.source, triple.target, triple.weight, 1)
        else:
            edge.value += triple.weight
            edge.count += 1

    result = AggregationResult(
        edges=tuple(edges_by_key.values()),
        nodes=_ordered_nodes(edges_by_key.values()),
        rows_total=rows_total,
        rows_used=rows_used,
    )
    logger.info(
        f"Processed {len(result.edges):,} unique edges, {len(nodes):,} unique nodes"
    )
    logger.debug(f"Skipped {result.rows_skipped:,} rows without origin or destination")
    return result
