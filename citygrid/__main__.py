"""Entry point for ``python -m citygrid``.

Loads the default YAML config, reads a stored grid (or builds the default
one), and prints the statistics report for it.
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib

from citygrid.simulation.config import EngineConfig
from citygrid.stats.scanner import compute_stats
from citygrid.world.grid import default_grid, load_stored_grid

_DEFAULT_CONFIG = (
    pathlib.Path(__file__).resolve().parent.parent / "config" / "default.yaml"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="citygrid",
        description="citygrid - city statistics for a stored grid",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=pathlib.Path,
        default=_DEFAULT_CONFIG,
        help="Path to YAML config file (default: config/default.yaml)",
    )
    parser.add_argument(
        "-g",
        "--grid",
        type=pathlib.Path,
        default=None,
        help="JSON file holding the grid (default: a fresh city grid)",
    )
    parser.add_argument(
        "--happiness",
        type=int,
        default=None,
        help="Baseline happiness (default: from config)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON, congestion map included",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI args, scan the grid, print the report."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = EngineConfig()
    if args.config.exists():
        config = EngineConfig.from_yaml(args.config)
    if args.grid is None:
        grid = default_grid(config.grid_size, config.boundary_rows)
    else:
        grid = load_stored_grid(args.grid.read_text(), config.grid_size)

    baseline = config.default_happiness if args.happiness is None else args.happiness
    stats = compute_stats(grid, baseline, congestion_radius=config.congestion_radius)

    if args.json:
        print(json.dumps(stats.to_dict()))
        return

    summary = stats.to_dict()
    summary.pop("congestionMap")
    width = max(len(key) for key in summary)
    for key, value in summary.items():
        print(f"{key:<{width}}  {value}")


if __name__ == "__main__":
    main()
