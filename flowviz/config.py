"""Configuration management for flowviz."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from flowviz.log_config import get_logger

logger = get_logger(__name__)

DEFAULT_FLOW_TOP_N = 50
DEFAULT_NETWORK_TOP_N = 100
MAX_EGO_PANELS = 8


@dataclass(frozen=True)
class ColumnMapping:
    """Column roles used to turn rows into weighted edges.

    Only ``origin`` and ``destination`` are required. Coordinates are used in
    pairs: an origin-side coordinate needs both ``origin_lat`` and
    ``origin_lng``, a destination-side coordinate needs both ``dest_lat`` and
    ``dest_lng``.
    """

    origin: str = ""
    destination: str = ""
    weight: str | None = None
    origin_lat: str | None = None
    origin_lng: str | None = None
    dest_lat: str | None = None
    dest_lng: str | None = None

    @property
    def is_complete(self) -> bool:
        """Return True when both origin and destination columns are selected."""
        return bool(self.origin) and bool(self.destination)

    @property
    def has_origin_coordinates(self) -> bool:
        return bool(self.origin_lat) and bool(self.origin_lng)

    @property
    def has_dest_coordinates(self) -> bool:
        return bool(self.dest_lat) and bool(self.dest_lng)

    @property
    def has_coordinates(self) -> bool:
        """Return True when at least one coordinate pair is fully configured."""
        return self.has_origin_coordinates or self.has_dest_coordinates

    def validate(self, headers: list[str] | None = None) -> None:
        """Validate the column roles.

        Args:
            headers: Optional list of available column names. When given, every
                configured column must be present.

        Raises:
            ValueError: If origin or destination is missing, if they name the
                same column, or if a configured column is not in ``headers``.
        """
        if not self.origin or not self.destination:
            raise ValueError("Select Origin and Destination to proceed.")
        if self.origin == self.destination:
            raise ValueError("Origin and Destination cannot be the same column.")
        if headers is None:
            return
        available = set(headers)
        for role, column in self.columns().items():
            if column not in available:
                raise ValueError(f"Column for '{role}' not found in data: {column!r}")

    def columns(self) -> dict[str, str]:
        """Return configured role -> column name pairs, skipping unset roles."""
        roles = {
            "origin": self.origin,
            "destination": self.destination,
            "weight": self.weight,
            "origin_lat": self.origin_lat,
            "origin_lng": self.origin_lng,
            "dest_lat": self.dest_lat,
            "dest_lng": self.dest_lng,
        }
        return {role: col for role, col in roles.items() if col}


@dataclass
class InputConfig:
    """Location of the tabular dataset."""

    path: Path
    sheet: str | None = None

    def __post_init__(self) -> None:
        """Convert string paths to Path objects."""
        self.path = Path(self.path)


@dataclass
class ViewDefaults:
    """Initial parameters for each view.

    The flow diagram shows the 50 heaviest edges and the force-directed graph
    the 100 heaviest unless overridden.
    """

    flow_top_n: int = DEFAULT_FLOW_TOP_N
    network_top_n: int = DEFAULT_NETWORK_TOP_N
    map_cost_mode: bool = False
    map_color_by: str | None = None
    ego_panels: int = 4


@dataclass
class OutputConfig:
    """Formatting of exported payloads."""

    json_indent: int = 2


@dataclass
class FlowvizConfig:
    """Complete flowviz configuration.

    Aggregates the input location, the column role mapping, view defaults and
    output formatting into a single object loaded from YAML.
    """

    input: InputConfig
    columns: ColumnMapping = field(default_factory=ColumnMapping)
    views: ViewDefaults = field(default_factory=ViewDefaults)
    output: OutputConfig = field(default_factory=OutputConfig)
    _source_path: Path | None = None

    @classmethod
    def from_yaml(cls, config_path: Path) -> FlowvizConfig:
        """Load configuration from YAML file.

        Relative input paths are resolved against the configuration file's
        directory.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Parsed configuration object.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            ValueError: If configuration is invalid.
        """
        logger.info(f"Loading configuration from: {config_path}")

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration: {e}")
            raise

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration file must contain a YAML mapping")

        cfg = cls._from_dict(raw_config)
        if not cfg.input.path.is_absolute():
            cfg.input.path = Path(config_path).parent / cfg.input.path
        cfg._source_path = Path(config_path)
        return cfg

    @classmethod
    def _from_dict(cls, config_dict: dict[str, Any]) -> FlowvizConfig:
        """Create configuration from dictionary.

        Args:
            config_dict: Raw configuration dictionary.

        Returns:
            Parsed configuration object.
        """
        if "input" not in config_dict:
            raise ValueError("Missing required 'input' configuration section")
        if "columns" not in config_dict:
            raise ValueError("Missing required 'columns' configuration section")

        input_dict = config_dict["input"]
        if not isinstance(input_dict, dict) or "path" not in input_dict:
            raise ValueError("'input' section must be a dictionary with a 'path'")
        input_cfg = InputConfig(**input_dict)

        columns_dict = config_dict["columns"]
        if not isinstance(columns_dict, dict):
            raise ValueError("'columns' configuration section must be a dictionary")
        try:
            columns = ColumnMapping(
                **{k: (str(v) if v is not None else None) for k, v in columns_dict.items()}
            )
        except TypeError as exc:
            raise ValueError(f"Unknown key in 'columns' section: {exc}") from exc
        columns.validate()

        views_dict = config_dict.get("views", {}) or {}
        if not isinstance(views_dict, dict):
            raise ValueError("'views' configuration section must be a dictionary")
        views = ViewDefaults(
            flow_top_n=_positive_int(views_dict, "flow_top_n", DEFAULT_FLOW_TOP_N),
            network_top_n=_positive_int(
                views_dict, "network_top_n", DEFAULT_NETWORK_TOP_N
            ),
            map_cost_mode=bool(views_dict.get("map_cost_mode", False)),
            map_color_by=_optional_str(views_dict.get("map_color_by")),
            ego_panels=_positive_int(views_dict, "ego_panels", 4),
        )
        if views.ego_panels > MAX_EGO_PANELS:
            raise ValueError(f"views.ego_panels must be at most {MAX_EGO_PANELS}")

        output_dict = config_dict.get("output", {}) or {}
        if not isinstance(output_dict, dict):
            raise ValueError("'output' configuration section must be a dictionary")
        output = OutputConfig(**output_dict)

        return cls(input=input_cfg, columns=columns, views=views, output=output)

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If configuration is invalid.
        """
        logger.info("Validating configuration")
        self.columns.validate()
        if not self.input.path.exists():
            raise ValueError(f"Input file not found: {self.input.path}")
        logger.info("Configuration validation passed")

    def summary(self) -> str:
        """Generate configuration summary string.

        Returns:
            Human-readable configuration summary.
        """
        cols = self.columns
        lines = [
            "FLOWVIZ CONFIGURATION",
            "=" * 60,
            "",
            "INPUT",
            "-" * 30,
            f"   Path: {self.input.path}",
            f"   Sheet: {self.input.sheet or '(first)'}",
            "",
            "COLUMNS",
            "-" * 30,
            f"   Origin: {cols.origin}",
            f"   Destination: {cols.destination}",
            f"   Weight: {cols.weight or 'Automatic (count)'}",
            f"   Origin coordinates: {_pair(cols.origin_lat, cols.origin_lng)}",
            f"   Destination coordinates: {_pair(cols.dest_lat, cols.dest_lng)}",
            "",
            "VIEWS",
            "-" * 30,
            f"   Flow Top-N: {self.views.flow_top_n}",
            f"   Network Top-N: {self.views.network_top_n}",
            f"   Map cost mode: {self.views.map_cost_mode}",
            f"   Map color by: {self.views.map_color_by or '-'}",
            f"   Ego panels: {self.views.ego_panels}",
            "",
            "=" * 60,
        ]
        return "\n".join(lines)


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    try:
        parsed = int(value)
        if parsed <= 0 or parsed != value:
            raise ValueError
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'views.{key}' must be a positive integer") from exc
    return parsed


def _pair(lat: str | None, lng: str | None) -> str:
    if lat and lng:
        return f"{lat} / {lng}"
    return "-"


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
