"""View projections over the aggregated graph.

Each projection is a pure function of a ``GraphState`` and a view's
parameters and returns a render payload: the exact node and edge subset the
view draws plus its summary statistics. Three projections are provided:

1. ``project_top_n``: filtered, value-sorted top-N edges for the flow diagram
   and the force-directed graph.
2. ``project_ego``: a focus node, its direct neighbours and every edge among
   them.
3. ``project_map``: filtered edges placed geographically, with per-edge metric
   (weight, or weight times great-circle distance in cost mode), per-node size
   and origin/destination/dual shape classification.

Payloads serialize with ``to_dict()`` into the camelCase contracts consumed by
the rendering layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Sequence

import numpy as np

from flowviz.aggregator import Edge
from flowviz.colors import (
    FALLBACK_COLOR,
    OrdinalColors,
    group_palette,
    palette,
    resolve_color_groups,
)
from flowviz.config import DEFAULT_FLOW_TOP_N, DEFAULT_NETWORK_TOP_N
from flowviz.graph_index import weighted_degree
from flowviz.log_config import get_logger

if TYPE_CHECKING:
    from flowviz.state import GraphState

logger = get_logger(__name__)

NO_DATA_MESSAGE = "No data available."
NO_FLOWS_MESSAGE = "No flows to display with the applied filters."
NO_FOCUS_MESSAGE = "Select a destination to show the ego-network."
NO_COORDINATES_MESSAGE = "Coordinates not available: configure latitude/longitude columns."

FLOW_VIEW = "flow"
NETWORK_VIEW = "network"

# Force-graph node size and edge width ranges
NODE_SIZE_MIN = 15.0
NODE_SIZE_SPAN = 85.0
EDGE_WIDTH_MIN = 0.5
EDGE_WIDTH_SPAN = 4.5

# Ego-network edge width clamp
EGO_WIDTH_MIN = 1.0
EGO_WIDTH_MAX = 6.0

SHAPE_ORIGIN = "origin"
SHAPE_DESTINATION = "destination"
SHAPE_DUAL = "dual"


def format_number(value: float) -> str:
    """Format a number with thousands separators and at most 3 decimals."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _total(edges: Iterable[Edge]) -> float:
    return float(sum(e.value for e in edges))


def filter_edges(
    edges: Iterable[Edge], origin: str = "", destination: str = ""
) -> list[Edge]:
    """Keep edges matching the exact origin and destination filters.

    An empty filter matches everything.
    """
    return [
        e
        for e in edges
        if (not origin or e.source == origin)
        and (not destination or e.target == destination)
    ]


def select_top_n(edges: Iterable[Edge], top_n: int) -> list[Edge]:
    """Return the ``top_n`` heaviest edges, descending by value.

    The sort is stable: equal values keep their aggregated (first-seen) order.
    """
    ranked = sorted(edges, key=lambda e: e.value, reverse=True)
    return ranked[:top_n]


def _linear_scale(
    values: np.ndarray, out_min: float, out_span: float, *, positive_only: bool
) -> np.ndarray:
    """Map values linearly onto [out_min, out_min + out_span].

    The domain is the min/max of the finite ``values`` (only positive values
    when ``positive_only``); a zero-width domain uses a span of 1. Results
    are clipped to the output range, so infinite values land on its ends.
    """
    if values.size == 0:
        return values.astype(float)
    domain = values[np.isfinite(values)]
    if positive_only:
        domain = domain[domain > 0]
    if domain.size == 0:
        lo, hi = 0.0, 0.0
    else:
        lo, hi = float(domain.min()), float(domain.max())
    delta = (hi - lo) or 1.0
    scaled = out_min + (values - lo) / delta * out_span
    return np.clip(scaled, out_min, out_min + out_span)


# ---------------------------------------------------------------------------
# Top-N projection (flow diagram, force-directed graph)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TopNParams:
    """Parameters of a top-N view.

    A ``top_n`` of zero or less selects the view's default (see
    ``default_top_n``).
    """

    top_n: int = DEFAULT_FLOW_TOP_N
    origin_filter: str = ""
    dest_filter: str = ""


@dataclass(frozen=True)
class TopNStats:
    total_links: int
    total_weight: float
    displayed_links: int
    displayed_weight: float

    def label(self) -> str:
        return (
            f"Displayed links: {self.displayed_links}/{self.total_links} · "
            f"Displayed weight: {format_number(self.displayed_weight)} / "
            f"{format_number(self.total_weight)}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLinks": self.total_links,
            "totalWeight": self.total_weight,
            "displayedLinks": self.displayed_links,
            "displayedWeight": self.displayed_weight,
        }


@dataclass(frozen=True)
class FlowNode:
    name: str
    weight: float
    size: float
    color: str


@dataclass(frozen=True)
class FlowEdge:
    source: str
    target: str
    value: float
    width: float
    color: str


@dataclass(frozen=True)
class TopNPayload:
    """Render payload of the flow diagram or the force-directed graph."""

    view: str
    nodes: tuple[FlowNode, ...] = ()
    edges: tuple[FlowEdge, ...] = ()
    stats: TopNStats | None = None
    message: str = ""

    @property
    def has_data(self) -> bool:
        return bool(self.edges)

    def to_dict(self) -> dict[str, Any]:
        return {
            "view": self.view,
            "nodes": [
                {"name": n.name, "weight": n.weight, "size": n.size, "color": n.color}
                for n in self.nodes
            ],
            "edges": [
                {
                    "source": e.source,
                    "target": e.target,
                    "value": e.value,
                    "width": e.width,
                    "color": e.color,
                }
                for e in self.edges
            ],
            "stats": self.stats.to_dict() if self.stats else None,
            "message": self.message,
        }


def project_top_n(
    graph: GraphState, params: TopNParams, view: str = FLOW_VIEW
) -> TopNPayload:
    """Project the filtered top-N subset of the aggregated graph.

    Edges are filtered by exact origin/destination match, sorted descending
    by value and truncated to ``params.top_n``. Nodes are the endpoints of the
    retained edges, in first-appearance order. Totals in the stats cover the
    whole aggregated graph; displayed figures cover the retained edges only.

    Node sizes scale the weighted degree (sum of displayed edge values in and
    out) to 15..100; edge widths scale the value to 0.5..5. The flow view
    colours edges by target, the network view by source.

    Args:
        graph: Current graph state.
        params: Filters and top-N.
        view: ``"flow"`` or ``"network"``.

    Returns:
        TopNPayload; with a ``message`` and no stats when the graph is empty.
    """
    edges = graph.edges
    if not edges:
        return TopNPayload(view=view, message=NO_DATA_MESSAGE)

    filtered = filter_edges(edges, params.origin_filter, params.dest_filter)
    top_n = int(params.top_n)
    if top_n <= 0:
        top_n = default_top_n(view)
    displayed = select_top_n(filtered, top_n)

    stats = TopNStats(
        total_links=len(edges),
        total_weight=graph.aggregation.total_weight,
        displayed_links=len(displayed),
        displayed_weight=_total(displayed),
    )
    logger.debug(
        f"{view} projection: top_n={top_n} origin={params.origin_filter!r} "
        f"dest={params.dest_filter!r} -> {len(displayed)}/{len(filtered)} edges"
    )
    if not displayed:
        return TopNPayload(view=view, stats=stats, message=NO_FLOWS_MESSAGE)

    degree = weighted_degree(displayed)
    names = list(degree)
    sizes = _linear_scale(
        np.array([degree[n] for n in names], dtype=float),
        NODE_SIZE_MIN,
        NODE_SIZE_SPAN,
        positive_only=True,
    )
    widths = _linear_scale(
        np.array([e.value for e in displayed], dtype=float),
        EDGE_WIDTH_MIN,
        EDGE_WIDTH_SPAN,
        positive_only=False,
    )

    color = OrdinalColors()
    nodes = tuple(
        FlowNode(name=n, weight=degree[n], size=float(s), color=color(n))
        for n, s in zip(names, sizes)
    )
    out_edges = tuple(
        FlowEdge(
            source=e.source,
            target=e.target,
            value=e.value,
            width=float(w),
            color=color(e.source if view == NETWORK_VIEW else e.target),
        )
        for e, w in zip(displayed, widths)
    )
    return TopNPayload(view=view, nodes=nodes, edges=out_edges, stats=stats)


def default_top_n(view: str) -> int:
    """Return the default top-N of a view."""
    return DEFAULT_NETWORK_TOP_N if view == NETWORK_VIEW else DEFAULT_FLOW_TOP_N


# ---------------------------------------------------------------------------
# Ego projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EgoParams:
    """Focus node of an ego panel; empty means nothing selected."""

    focus: str = ""


@dataclass(frozen=True)
class EgoStats:
    neighbor_count: int
    edge_count: int
    total_weight: float

    @property
    def show_neighbors(self) -> bool:
        return self.neighbor_count != self.edge_count

    def label(self) -> str:
        parts = []
        if self.show_neighbors:
            parts.append(f"Neighbors: {self.neighbor_count}")
        parts.append(f"Edges: {self.edge_count}")
        parts.append(f"Referrals: {format_number(self.total_weight)}")
        return " · ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "neighborCount": self.neighbor_count,
            "edgeCount": self.edge_count,
            "totalWeight": self.total_weight,
        }


@dataclass(frozen=True)
class EgoNode:
    id: int
    name: str
    weight: float
    size: float
    is_focus: bool = False


@dataclass(frozen=True)
class EgoEdge:
    source: str
    target: str
    value: float
    width: float


@dataclass(frozen=True)
class EgoPayload:
    """Render payload of one ego-network panel."""

    focus: str = ""
    nodes: tuple[EgoNode, ...] = ()
    edges: tuple[EgoEdge, ...] = ()
    stats: EgoStats | None = None
    message: str = ""

    @property
    def has_data(self) -> bool:
        return bool(self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "focus": self.focus,
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "weight": n.weight,
                    "size": n.size,
                    "isFocus": n.is_focus,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "source": e.source,
                    "target": e.target,
                    "value": e.value,
                    "width": e.width,
                }
                for e in self.edges
            ],
            "stats": self.stats.to_dict() if self.stats else None,
            "message": self.message,
        }


def ego_edges(graph: GraphState, focus: str) -> tuple[list[str], list[Edge]]:
    """Collect the ego neighbourhood of ``focus``.

    Returns:
        (neighbour names including the focus, displayed edges). Neighbours are
        ordered: targets of outgoing edges, sources of incoming edges, then the
        focus. Edges are the outgoing edges, the incoming edges, then every
        other aggregated edge with both endpoints among the neighbours, each
        edge once.
    """
    outgoing = graph.index.out_edges(focus)
    incoming = graph.index.in_edges(focus)

    neighbors: dict[str, None] = {}
    for e in outgoing:
        neighbors.setdefault(e.target, None)
    for e in incoming:
        neighbors.setdefault(e.source, None)
    neighbors.setdefault(focus, None)

    seen: set[tuple[str, str]] = set()
    displayed: list[Edge] = []

    def _take(edge: Edge) -> None:
        pair = (edge.source, edge.target)
        if pair not in seen:
            seen.add(pair)
            displayed.append(edge)

    for e in outgoing:
        _take(e)
    for e in incoming:
        _take(e)
    for e in graph.edges:
        if e.source in neighbors and e.target in neighbors:
            _take(e)
    return list(neighbors), displayed


def project_ego(graph: GraphState, params: EgoParams) -> EgoPayload:
    """Project the ego network around ``params.focus``.

    Per-node weight is the sum of values of displayed edges touching the
    node. Stats count neighbours excluding the focus, displayed edges and
    their total value.
    """
    focus = params.focus.strip()
    if not focus:
        return EgoPayload(message=NO_FOCUS_MESSAGE)
    if not graph.edges:
        return EgoPayload(focus=focus, message=NO_DATA_MESSAGE)

    names, displayed = ego_edges(graph, focus)
    degree = weighted_degree(displayed)

    nodes = tuple(
        EgoNode(
            id=i,
            name=name,
            weight=degree.get(name, 0.0),
            size=NODE_SIZE_MIN
            + min(NODE_SIZE_SPAN, float(np.floor(degree.get(name, 0.0) + 0.5))),
            is_focus=name == focus,
        )
        for i, name in enumerate(names)
    )
    edges = tuple(
        EgoEdge(
            source=e.source,
            target=e.target,
            value=e.value,
            width=float(np.clip(e.value, EGO_WIDTH_MIN, EGO_WIDTH_MAX)),
        )
        for e in displayed
    )
    stats = EgoStats(
        neighbor_count=max(0, len(names) - 1),
        edge_count=len(displayed),
        total_weight=_total(displayed),
    )
    logger.debug(f"Ego projection for {focus!r}: {stats.label()}")
    return EgoPayload(focus=focus, nodes=nodes, edges=edges, stats=stats)


# ---------------------------------------------------------------------------
# Geographic projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MapParams:
    """Parameters of the map view.

    Attributes:
        origin_filter: Exact-match source filter, empty for all.
        dest_filter: Exact-match target filter, empty for all.
        cost_mode: Use weight x great-circle distance as the edge metric.
        color_by: Column whose values group nodes into legend colours.
        selected_group: Legend entry restricting edges to targets in that
            group; empty for no restriction.
    """

    origin_filter: str = ""
    dest_filter: str = ""
    cost_mode: bool = False
    color_by: str | None = None
    selected_group: str = ""


@dataclass(frozen=True)
class MapStats:
    node_count: int
    displayed_links: int
    total_links: int

    def label(self) -> str:
        return (
            f"Nodes: {self.node_count} · "
            f"Displayed links: {self.displayed_links}/{self.total_links}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeCount": self.node_count,
            "displayedLinks": self.displayed_links,
            "totalLinks": self.total_links,
        }


@dataclass(frozen=True)
class MapNode:
    name: str
    lat: float
    lng: float
    size: float
    shape: str
    color: str
    group: str | None = None


@dataclass(frozen=True)
class MapEdge:
    source: str
    target: str
    value: float
    metric: float
    color: str
    drawable: bool
    distance_km: float | None = None


@dataclass(frozen=True)
class MapPayload:
    """Render payload of the geographic map."""

    nodes: tuple[MapNode, ...] = ()
    edges: tuple[MapEdge, ...] = ()
    stats: MapStats | None = None
    legend: dict[str, str] = field(default_factory=dict)
    cost_mode: bool = False
    message: str = ""

    @property
    def has_data(self) -> bool:
        return any(e.drawable for e in self.edges)

    @property
    def drawable_edges(self) -> tuple[MapEdge, ...]:
        return tuple(e for e in self.edges if e.drawable)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {
                    "name": n.name,
                    "lat": n.lat,
                    "lng": n.lng,
                    "size": n.size,
                    "shape": n.shape,
                    "color": n.color,
                    "group": n.group,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "source": e.source,
                    "target": e.target,
                    "value": e.value,
                    "metric": e.metric,
                    "color": e.color,
                    "drawable": e.drawable,
                    "distanceKm": e.distance_km,
                }
                for e in self.edges
            ],
            "stats": self.stats.to_dict() if self.stats else None,
            "legend": dict(self.legend),
            "costMode": self.cost_mode,
            "message": self.message,
        }


def classify_shapes(edges: Sequence[Edge]) -> dict[str, str]:
    """Return node -> shape from the roles it plays in ``edges``."""
    sources = {e.source for e in edges}
    targets = {e.target for e in edges}
    shapes: dict[str, str] = {}
    for e in edges:
        for name in (e.source, e.target):
            if name in shapes:
                continue
            if name in sources and name in targets:
                shapes[name] = SHAPE_DUAL
            elif name in sources:
                shapes[name] = SHAPE_ORIGIN
            else:
                shapes[name] = SHAPE_DESTINATION
    return shapes


def project_map(graph: GraphState, params: MapParams) -> MapPayload:
    """Project the filtered graph onto geographic coordinates.

    Edges pass the origin/destination filters and, when a colour-by column
    and legend group are selected, must end at a node of that group; their
    sources are then drawn in the group's colour whatever their own group.
    Every filtered edge is emitted with its metric and a ``drawable`` flag;
    node size sums the metric over all filtered edges touching the node.
    Only nodes with a resolved coordinate are emitted.
    """
    cost_mode = bool(params.cost_mode)
    if not graph.coordinates.available:
        return MapPayload(cost_mode=cost_mode, message=NO_COORDINATES_MESSAGE)
    if not graph.edges:
        return MapPayload(cost_mode=cost_mode, message=NO_DATA_MESSAGE)

    coords = graph.coordinates
    filtered = filter_edges(graph.edges, params.origin_filter, params.dest_filter)

    groups: dict[str, str] = {}
    legend: dict[str, str] = {}
    if params.color_by:
        groups = resolve_color_groups(graph.rows, graph.mapping, params.color_by)
        legend = group_palette(groups)

    forced: dict[str, str] = {}
    selected = params.selected_group
    if params.color_by and selected:
        filtered = [e for e in filtered if groups.get(e.target) == selected]
        forced_color = legend.get(selected, FALLBACK_COLOR)
        for e in filtered:
            forced[e.source] = forced_color

    shape_colors = dict(zip((SHAPE_ORIGIN, SHAPE_DESTINATION, SHAPE_DUAL), palette()))
    shapes = classify_shapes(filtered)

    def _node_color(name: str) -> str:
        if name in forced:
            return forced[name]
        if params.color_by:
            group = groups.get(name)
            return legend.get(group, FALLBACK_COLOR) if group else FALLBACK_COLOR
        return shape_colors[shapes[name]]

    map_edges: list[MapEdge] = []
    size: dict[str, float] = {}
    for e in filtered:
        distance = coords.distance_km(e)
        if cost_mode:
            metric = e.value * distance if distance is not None else 0.0
        else:
            metric = e.value
        size[e.source] = size.get(e.source, 0.0) + metric
        size[e.target] = size.get(e.target, 0.0) + metric
        map_edges.append(
            MapEdge(
                source=e.source,
                target=e.target,
                value=e.value,
                metric=metric,
                color=_node_color(e.target),
                drawable=coords.is_drawable(e),
                distance_km=distance,
            )
        )

    nodes: list[MapNode] = []
    for name, shape in shapes.items():
        point = coords.get(name)
        if point is None:
            continue
        nodes.append(
            MapNode(
                name=name,
                lat=point.lat,
                lng=point.lng,
                size=size.get(name, 0.0),
                shape=shape,
                color=_node_color(name),
                group=groups.get(name),
            )
        )

    drawable = sum(1 for e in map_edges if e.drawable)
    stats = MapStats(
        node_count=len(nodes), displayed_links=drawable, total_links=len(graph.edges)
    )
    logger.debug(
        f"Map projection: {len(filtered)} filtered edges, {drawable} drawable, "
        f"{len(nodes)} placed nodes (cost_mode={cost_mode})"
    )
    message = "" if drawable else NO_FLOWS_MESSAGE
    return MapPayload(
        nodes=tuple(nodes),
        edges=tuple(map_edges),
        stats=stats,
        legend=legend,
        cost_mode=cost_mode,
        message=message,
    )
