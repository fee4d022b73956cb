"""Command line interface for producing view payloads from a dataset."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from pathlib import Path

from flowviz.config import FlowvizConfig
from flowviz.export import payload_to_json, save_payload
from flowviz.ingestion import load_rows
from flowviz.log_config import get_logger
from flowviz.projection import FLOW_VIEW, NETWORK_VIEW, EgoParams, MapParams, TopNParams
from flowviz.state import MAP_VIEW, AppState, Payload, ego_view_id

logger = get_logger(__name__)


@contextmanager
def Timer(description: str):
    """Context manager for timing operations with both print and log output.

    Args:
        description: Operation description for timing messages.

    Yields:
        None: Context manager yields nothing.
    """
    print(f"🔄 {description}...", file=sys.stderr)
    logger.info(f"Starting {description}")
    start = time.time()
    try:
        yield
        elapsed = time.time() - start
        print(f"✅ {description} (completed in {elapsed:.1f}s)", file=sys.stderr)
        logger.info(f"Completed {description} in {elapsed:.1f}s")
    except Exception as e:
        elapsed = time.time() - start
        print(f"❌ {description} (failed after {elapsed:.1f}s)", file=sys.stderr)
        logger.error(f"Failed {description} after {elapsed:.1f}s: {e}")
        raise


def _load_config(config_path: Path) -> FlowvizConfig:
    """Load configuration.

    Args:
        config_path: Path to YAML configuration file.

    Returns:
        Loaded configuration object.

    Raises:
        SystemExit: If configuration loading fails.
    """
    try:
        config = FlowvizConfig.from_yaml(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(2)  # Config problem
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"❌ Configuration error: {e}")
        print(f"💡 Check YAML syntax in: {config_path}")
        sys.exit(2)  # Config problem


def _build_state(config: FlowvizConfig, sheet: str | None = None) -> AppState:
    """Load the dataset and aggregate it under the configured columns.

    Args:
        config: Loaded configuration.
        sheet: Workbook sheet overriding the configured one.

    Raises:
        FileNotFoundError: If the input file is missing.
        ValueError: If the data can't be loaded or the mapping is rejected.
    """
    row_set = load_rows(config.input.path, sheet or config.input.sheet)
    state = AppState.initial(config.views).load_rows(row_set)
    state = state.set_column_mapping(config.columns)
    if state.graph is None:
        message = state.status.message if state.status else "Invalid column mapping"
        raise ValueError(message)
    if state.graph.is_empty:
        logger.warning("No valid edges after normalization")
    return state


def _emit(payload: Payload, args: argparse.Namespace, indent: int) -> None:
    """Write the payload to ``args.output`` or stdout, plus its stats label."""
    output = getattr(args, "output", None)
    if output:
        save_payload(payload, Path(output), indent=indent)
        print(f"🎉 SUCCESS! Wrote payload: {output}")
    else:
        print(payload_to_json(payload, indent=indent))

    if payload.message:
        print(f"⚠️  {payload.message}", file=sys.stderr)
    if payload.stats is not None:
        print(payload.stats.label(), file=sys.stderr)


def _run_view(args: argparse.Namespace, view_id: str, params) -> None:
    """Load config and data, project one view and emit it.

    Exit codes: 2 configuration problem, 3 input/validation problem, 1 other.
    """
    config = _load_config(Path(args.config))
    try:
        with Timer(f"{view_id} projection"):
            state = _build_state(config, getattr(args, "sheet", None))
            state = state.set_view_params(view_id, params(config))
            payload = state.payload(view_id)
        assert payload is not None
        _emit(payload, args, config.output.json_indent)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        print(f"❌ File not found: {e}")
        print("💡 Check the input path in configuration")
        sys.exit(3)
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        print(f"❌ {e}")
        print("💡 Check input data and column configuration")
        sys.exit(3)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        print(f"❌ ERROR: {e}")
        sys.exit(1)


def flow_command(args: argparse.Namespace) -> None:
    """Project the flow diagram view."""
    _run_view(
        args,
        FLOW_VIEW,
        lambda cfg: TopNParams(
            top_n=args.top_n or cfg.views.flow_top_n,
            origin_filter=args.origin or "",
            dest_filter=args.destination or "",
        ),
    )


def network_command(args: argparse.Namespace) -> None:
    """Project the force-directed graph view."""
    _run_view(
        args,
        NETWORK_VIEW,
        lambda cfg: TopNParams(
            top_n=args.top_n or cfg.views.network_top_n,
            origin_filter=args.origin or "",
            dest_filter=args.destination or "",
        ),
    )


def ego_command(args: argparse.Namespace) -> None:
    """Project an ego-network around a focus node."""
    _run_view(args, ego_view_id(1), lambda cfg: EgoParams(focus=args.focus))


def map_command(args: argparse.Namespace) -> None:
    """Project the geographic map view."""
    _run_view(
        args,
        MAP_VIEW,
        lambda cfg: MapParams(
            origin_filter=args.origin or "",
            dest_filter=args.destination or "",
            cost_mode=bool(args.cost or cfg.views.map_cost_mode),
            color_by=args.color_by or cfg.views.map_color_by,
            selected_group=args.group or "",
        ),
    )


def info_command(args: argparse.Namespace) -> None:
    """Show configuration and dataset summary.

    Args:
        args: Parsed command line arguments containing config file path.
    """
    try:
        config_obj = _load_config(Path(args.config))
        print(config_obj.summary())

        input_path = Path(config_obj.input.path)
        status = "✅" if input_path.exists() else "❌"
        print(f"\nInput file: {status} {input_path}")
        if not input_path.exists():
            return

        state = _build_state(config_obj, args.sheet)
        graph = state.graph
        assert graph is not None and state.row_set is not None
        counts = graph.summary()
        counts["columns"] = len(state.row_set.headers)
        print("\nDataset")
        print("=" * 20)
        if state.row_set.sheet:
            print(f"sheet: {state.row_set.sheet} of {state.row_set.sheet_names}")
        for key, value in counts.items():
            print(f"{key}: {value:,}")
        if graph.is_empty:
            print("\n⚠️  No valid edges: check origin/destination columns")

    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


def _add_filters(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--origin", default=None, help="Exact-match origin filter")
    sub.add_argument(
        "--destination", default=None, help="Exact-match destination filter"
    )


def _add_sheet(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--sheet", default=None, help="Workbook sheet (default: configured or first)"
    )


def _add_common(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "config",
        nargs="?",
        default="config.yml",
        help="Configuration file path (default: config.yml)",
    )
    sub.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output JSON file. Defaults to stdout.",
    )
    _add_sheet(sub)


def main() -> None:
    """Parse command line arguments and execute the appropriate subcommand.

    Configures logging, parses CLI arguments, and dispatches to the correct
    command function.
    """
    parser = argparse.ArgumentParser(
        prog="flowviz",
        description="Aggregate origin/destination tables into render-ready view payloads.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console output (logs only)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    flow_parser = subparsers.add_parser("flow", help="Top-N flow diagram payload")
    _add_common(flow_parser)
    _add_filters(flow_parser)
    flow_parser.add_argument("--top-n", type=int, default=None, help="Edges to keep")
    flow_parser.set_defaults(func=flow_command)

    network_parser = subparsers.add_parser(
        "network", help="Top-N force-directed graph payload"
    )
    _add_common(network_parser)
    _add_filters(network_parser)
    network_parser.add_argument(
        "--top-n", type=int, default=None, help="Edges to keep"
    )
    network_parser.set_defaults(func=network_command)

    ego_parser = subparsers.add_parser("ego", help="Ego-network payload for a node")
    _add_common(ego_parser)
    ego_parser.add_argument("--focus", required=True, help="Focus node name")
    ego_parser.set_defaults(func=ego_command)

    map_parser = subparsers.add_parser("map", help="Geographic map payload")
    _add_common(map_parser)
    _add_filters(map_parser)
    map_parser.add_argument(
        "--cost",
        action="store_true",
        help="Use weight x great-circle distance as the edge metric",
    )
    map_parser.add_argument(
        "--color-by", default=None, help="Column used to colour nodes"
    )
    map_parser.add_argument(
        "--group", default=None, help="Only show edges into this colour group"
    )
    map_parser.set_defaults(func=map_command)

    info_parser = subparsers.add_parser(
        "info", help="Show configuration and dataset summary"
    )
    info_parser.add_argument(
        "config",
        nargs="?",
        default="config.yml",
        help="Configuration file path (default: config.yml)",
    )
    _add_sheet(info_parser)
    info_parser.set_defaults(func=info_command)

    args = parser.parse_args()

    import logging

    from flowviz.log_config import set_global_log_level

    if args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    set_global_log_level(log_level)

    if args.quiet:
        import builtins

        builtins.print = lambda *args, **kwargs: None

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
