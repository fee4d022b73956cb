"""Application state and the commands that derive new states.

``AppState`` is immutable. Every command (``load_rows``,
``set_column_mapping``, ``set_view_params``, ``switch_view``) returns a new
state and leaves the receiver untouched, so a rendering layer can hold on to
the state it last drew and diff against the next one.

The aggregated graph lives in a ``GraphState`` built in one step from the
rows and the column mapping: edges, adjacency index and coordinates are
created together and published together. Views never share parameters; a
view's payload is recomputed only when its own parameters or the graph change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Union

from flowviz.aggregator import AggregationResult, Edge, aggregate_edges
from flowviz.config import ColumnMapping, ViewDefaults
from flowviz.geo_utils import NodeCoordinates, resolve_coordinates
from flowviz.graph_index import GraphIndex
from flowviz.ingestion import Row, RowSet
from flowviz.log_config import get_logger
from flowviz.normalizer import cell_text
from flowviz.projection import (
    FLOW_VIEW,
    NETWORK_VIEW,
    EgoParams,
    EgoPayload,
    MapParams,
    MapPayload,
    TopNParams,
    TopNPayload,
    project_ego,
    project_map,
    project_top_n,
)

logger = get_logger(__name__)

MAP_VIEW = "map"
EGO_PREFIX = "ego-"

ViewParams = Union[TopNParams, EgoParams, MapParams]
Payload = Union[TopNPayload, EgoPayload, MapPayload]

CONFIG_VALID_MESSAGE = "Configuration valid. Visualizations will update."
NO_ROWS_MESSAGE = "Load a file before selecting columns."


def ego_view_id(panel: int) -> str:
    return f"{EGO_PREFIX}{panel}"


@dataclass(frozen=True)
class Status:
    """User-facing status line: ``level`` is "info", "warning" or "error"."""

    level: str
    message: str


@dataclass(frozen=True)
class GraphState:
    """Aggregated graph derived from a row set and a column mapping."""

    rows: tuple[Row, ...]
    mapping: ColumnMapping
    aggregation: AggregationResult
    index: GraphIndex
    coordinates: NodeCoordinates

    @classmethod
    def build(cls, rows: tuple[Row, ...] | list[Row], mapping: ColumnMapping) -> GraphState:
        """Aggregate, index and geolocate ``rows`` under ``mapping``.

        The mapping is expected to be valid; see ``ColumnMapping.validate``.
        """
        rows = tuple(rows)
        aggregation = aggregate_edges(rows, mapping)
        index = GraphIndex(aggregation.edges)
        coordinates = resolve_coordinates(rows, mapping)
        return cls(
            rows=rows,
            mapping=mapping,
            aggregation=aggregation,
            index=index,
            coordinates=coordinates,
        )

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self.aggregation.edges

    @property
    def is_empty(self) -> bool:
        return self.aggregation.is_empty

    def origin_options(self) -> list[str]:
        """Sorted unique edge sources, for origin filter selectors."""
        return self.index.sources()

    def destination_options(self) -> list[str]:
        """Sorted unique edge targets, for destination filter selectors."""
        return self.index.targets()

    def ego_choices(self) -> list[str]:
        """Unique non-empty destination cells across all rows, case-insensitively sorted."""
        values = {cell_text(row.get(self.mapping.destination)) for row in self.rows}
        values.discard("")
        return sorted(values, key=lambda v: (v.casefold(), v))

    def summary(self) -> dict[str, int]:
        return {
            "rows": self.aggregation.rows_total,
            "rowsUsed": self.aggregation.rows_used,
            "edges": len(self.edges),
            "nodes": len(self.aggregation.nodes),
            "nodesWithCoordinates": len(self.coordinates.coords),
        }


def project(graph: GraphState, view_id: str, params: ViewParams) -> Payload:
    """Dispatch ``params`` to the projection of ``view_id``."""
    if view_id in (FLOW_VIEW, NETWORK_VIEW) and isinstance(params, TopNParams):
        return project_top_n(graph, params, view_id)
    if view_id == MAP_VIEW and isinstance(params, MapParams):
        return project_map(graph, params)
    if view_id.startswith(EGO_PREFIX) and isinstance(params, EgoParams):
        return project_ego(graph, params)
    raise TypeError(f"No projection for view {view_id!r} with {type(params).__name__}")


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class AppState:
    """Complete, immutable application state."""

    row_set: RowSet | None = None
    mapping: ColumnMapping = field(default_factory=ColumnMapping)
    graph: GraphState | None = None
    view_params: Mapping[str, ViewParams] = field(
        default_factory=lambda: MappingProxyType({})
    )
    projections: Mapping[str, Payload] = field(
        default_factory=lambda: MappingProxyType({})
    )
    active_view: str = FLOW_VIEW
    status: Status | None = None

    @classmethod
    def initial(cls, defaults: ViewDefaults | None = None) -> AppState:
        """Create an empty state with default parameters for every view."""
        defaults = defaults or ViewDefaults()
        params: dict[str, ViewParams] = {
            FLOW_VIEW: TopNParams(top_n=defaults.flow_top_n),
            NETWORK_VIEW: TopNParams(top_n=defaults.network_top_n),
            MAP_VIEW: MapParams(
                cost_mode=defaults.map_cost_mode, color_by=defaults.map_color_by
            ),
        }
        for panel in range(1, defaults.ego_panels + 1):
            params[ego_view_id(panel)] = EgoParams()
        return cls(view_params=_freeze(params))

    @property
    def view_ids(self) -> list[str]:
        return list(self.view_params)

    # -- commands ---------------------------------------------------------

    def load_rows(self, row_set: RowSet) -> AppState:
        """Replace the dataset; the graph is discarded until columns are set."""
        logger.info(f"Loaded row set with {len(row_set.rows):,} rows")
        return replace(
            self,
            row_set=row_set,
            mapping=ColumnMapping(),
            graph=None,
            projections=_freeze({}),
            status=Status("info", row_set.status_message),
        )

    def set_column_mapping(self, mapping: ColumnMapping) -> AppState:
        """Rebuild the graph for ``mapping`` and recompute every view.

        An invalid mapping (missing or identical origin/destination, unknown
        column) leaves the graph, mapping and projections as they were and
        only reports a warning status.
        """
        if self.row_set is None:
            return replace(self, status=Status("warning", NO_ROWS_MESSAGE))
        try:
            mapping.validate(self.row_set.headers)
        except ValueError as exc:
            logger.warning(f"Column mapping rejected: {exc}")
            return replace(self, status=Status("warning", str(exc)))

        graph = GraphState.build(self.row_set.rows, mapping)
        projections = {
            view_id: project(graph, view_id, params)
            for view_id, params in self.view_params.items()
        }
        return replace(
            self,
            mapping=mapping,
            graph=graph,
            projections=_freeze(projections),
            status=Status("info", CONFIG_VALID_MESSAGE),
        )

    def set_view_params(self, view_id: str, params: ViewParams) -> AppState:
        """Replace one view's parameters and recompute only that view.

        Raises:
            KeyError: If ``view_id`` is not a known view.
            TypeError: If ``params`` is the wrong kind for the view.
        """
        current = self.view_params.get(view_id)
        if current is None:
            raise KeyError(f"Unknown view: {view_id!r}")
        if type(params) is not type(current):
            raise TypeError(
                f"View {view_id!r} takes {type(current).__name__}, "
                f"got {type(params).__name__}"
            )

        view_params = dict(self.view_params)
        view_params[view_id] = params
        projections = dict(self.projections)
        if self.graph is not None:
            projections[view_id] = project(self.graph, view_id, params)
        return replace(
            self, view_params=_freeze(view_params), projections=_freeze(projections)
        )

    def switch_view(self, view_id: str) -> AppState:
        """Make ``view_id`` the active view without recomputing anything."""
        if view_id not in self.view_params:
            raise KeyError(f"Unknown view: {view_id!r}")
        return replace(self, active_view=view_id)

    # -- queries ----------------------------------------------------------

    def payload(self, view_id: str) -> Payload | None:
        """Return the last payload computed for ``view_id``."""
        return self.projections.get(view_id)

    def stats_for(self, view_id: str) -> Any:
        """Return the last-computed stats of ``view_id`` (None if never computed)."""
        payload = self.projections.get(view_id)
        return payload.stats if payload is not None else None

    @property
    def active_stats(self) -> Any:
        return self.stats_for(self.active_view)
