"""Origin/destination flow aggregation and view projection.

Turns tabular rows of directed, weighted relationships into an aggregated
graph and derives render payloads for a flow diagram, a force-directed
graph, ego networks and a geographic map.
"""

__version__ = "0.1.0"

# Core classes and utilities
from .aggregator import Edge, aggregate_edges
from .config import ColumnMapping, FlowvizConfig
from .graph_index import GraphIndex
from .ingestion import RowSet, load_rows
from .projection import EgoParams, MapParams, TopNParams
from .state import AppState, GraphState

__all__ = [
    "AppState",
    "ColumnMapping",
    "Edge",
    "EgoParams",
    "FlowvizConfig",
    "GraphIndex",
    "GraphState",
    "MapParams",
    "RowSet",
    "TopNParams",
    "__version__",
    "aggregate_edges",
    "load_rows",
]
