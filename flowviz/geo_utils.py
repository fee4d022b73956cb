"""Geographic utilities: node coordinates, provenance and great-circle distance."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from flowviz.aggregator import Edge
from flowviz.config import ColumnMapping
from flowviz.log_config import get_logger
from flowviz.normalizer import cell_text, parse_number

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class LatLng:
    """WGS84 coordinate pair in decimal degrees."""

    lat: float
    lng: float


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two coordinates in kilometers.

    Args:
        a: First coordinate.
        b: Second coordinate.

    Returns:
        Distance along the sphere of radius ``EARTH_RADIUS_KM``.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def parse_coordinate(lat_value: Any, lng_value: Any) -> LatLng | None:
    """Parse two cells into a coordinate; None unless both are finite numbers."""
    lat = parse_number(lat_value)
    lng = parse_number(lng_value)
    if lat is None or lng is None:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return LatLng(lat, lng)


@dataclass(frozen=True)
class NodeCoordinates:
    """Resolved node coordinates with origin/destination provenance.

    ``coords`` keeps the first coordinate registered for a node, whichever
    side it came from. ``origin_side`` and ``dest_side`` record which roles
    supplied a parsable coordinate for the node.
    """

    coords: Mapping[str, LatLng] = field(
        default_factory=lambda: MappingProxyType({})
    )
    origin_side: frozenset[str] = frozenset()
    dest_side: frozenset[str] = frozenset()

    @property
    def available(self) -> bool:
        return bool(self.coords)

    def get(self, name: str) -> LatLng | None:
        return self.coords.get(name)

    def is_drawable(self, edge: Edge) -> bool:
        """Return True when ``edge`` can be placed on a map.

        The source needs an origin-side coordinate and the target a
        destination-side coordinate; any coordinate for the node is not
        enough.
        """
        return (
            edge.source in self.origin_side
            and edge.target in self.dest_side
            and edge.source in self.coords
            and edge.target in self.coords
        )

    def distance_km(self, edge: Edge) -> float | None:
        """Return the great-circle length of ``edge``, or None without coordinates."""
        a = self.coords.get(edge.source)
        b = self.coords.get(edge.target)
        if a is None or b is None:
            return None
        return haversine_km(a, b)


def resolve_coordinates(
    rows: Iterable[Mapping[str, Any]], mapping: ColumnMapping
) -> NodeCoordinates:
    """Derive node coordinates from the configured coordinate columns.

    Nothing is resolved unless at least one coordinate pair (origin lat/lng
    or destination lat/lng) is fully configured. A row registers its origin
    node when the origin pair parses to two finite numbers, and symmetrically
    for the destination node. The first coordinate seen for a node is kept.

    Args:
        rows: Row mappings.
        mapping: Column roles.

    Returns:
        NodeCoordinates; empty when no coordinate pair is configured.
    """
    if not mapping.has_coordinates:
        logger.debug("No coordinate columns configured; map view unavailable")
        return NodeCoordinates()

    coords: dict[str, LatLng] = {}
    origin_side: set[str] = set()
    dest_side: set[str] = set()
    use_origin = mapping.has_origin_coordinates
    use_dest = mapping.has_dest_coordinates

    for row in rows:
        if use_origin:
            name = cell_text(row.get(mapping.origin))
            point = parse_coordinate(
                row.get(mapping.origin_lat), row.get(mapping.origin_lng)
            )
            if name and point is not None:
                coords.setdefault(name, point)
                origin_side.add(name)
        if use_dest:
            name = cell_text(row.get(mapping.destination))
            point = parse_coordinate(
                row.get(mapping.dest_lat), row.get(mapping.dest_lng)
            )
            if name and point is not None:
                coords.setdefault(name, point)
                dest_side.add(name)

    logger.info(
        f"Resolved coordinates for {len(coords):,} nodes "
        f"({len(origin_side):,} origin-side, {len(dest_side):,} destination-side)"
    )
    return NodeCoordinates(
        coords=MappingProxyType(coords),
        origin_side=frozenset(origin_side),
        dest_side=frozenset(dest_side),
    )
