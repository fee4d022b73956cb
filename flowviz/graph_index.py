"""Adjacency indices over the aggregated edge list."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

import networkx as nx

from flowviz.aggregator import Edge
from flowviz.log_config import get_logger

logger = get_logger(__name__)


class GraphIndex:
    """Outgoing and incoming edge lists per node name.

    Built in one pass over the aggregated edges; each list keeps the order of
    the aggregated edge list. The index is never updated in place: a new
    dataset or column mapping means a new ``GraphIndex``.

    Lookups of unknown names return an empty tuple.
    """

    def __init__(self, edges: Iterable[Edge] = ()) -> None:
        out_index: dict[str, list[Edge]] = {}
        in_index: dict[str, list[Edge]] = {}
        edge_list: list[Edge] = []
        for edge in edges:
            edge_list.append(edge)
            out_index.setdefault(edge.source, []).append(edge)
            in_index.setdefault(edge.target, []).append(edge)

        self._edges: tuple[Edge, ...] = tuple(edge_list)
        self._out: Mapping[str, tuple[Edge, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in out_index.items()}
        )
        self._in: Mapping[str, tuple[Edge, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in in_index.items()}
        )
        logger.debug(
            f"Built graph index: {len(self._out)} sources, {len(self._in)} targets"
        )

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def out_index(self) -> Mapping[str, tuple[Edge, ...]]:
        return self._out

    @property
    def in_index(self) -> Mapping[str, tuple[Edge, ...]]:
        return self._in

    def out_edges(self, name: str) -> tuple[Edge, ...]:
        """Return edges whose source is ``name``."""
        return self._out.get(name, ())

    def in_edges(self, name: str) -> tuple[Edge, ...]:
        """Return edges whose target is ``name``."""
        return self._in.get(name, ())

    def sources(self) -> list[str]:
        """Return sorted unique edge sources."""
        return sorted(self._out)

    def targets(self) -> list[str]:
        """Return sorted unique edge targets."""
        return sorted(self._in)

    def __contains__(self, name: object) -> bool:
        return name in self._out or name in self._in

    def __len__(self) -> int:
        return len(self._edges)


def to_digraph(edges: Sequence[Edge]) -> nx.DiGraph:
    """Build a networkx DiGraph carrying ``value`` and ``count`` edge attributes.

    Node insertion follows edge order, endpoints in (source, target) order.
    """
    graph = nx.DiGraph()
    for edge in edges:
        graph.add_edge(edge.source, edge.target, value=edge.value, count=edge.count)
    return graph


def weighted_degree(edges: Sequence[Edge]) -> dict[str, float]:
    """Return in+out sum of ``value`` per node over ``edges``.

    Self-loops contribute their value twice, once per endpoint.
    """
    graph = to_digraph(edges)
    return {node: float(deg) for node, deg in graph.degree(weight="value")}
