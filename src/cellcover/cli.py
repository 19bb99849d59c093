"""
Command-line interface for cellcover.

Provides commands for covering rectangles and inspecting cells.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .cellid import CellId, average_edge_degrees
from .engine import (
    DEFAULT_MAX_CELLS,
    HIGHEST_INDEX_LEVEL,
    LOWEST_INDEX_LEVEL,
    cover_by_level,
)
from .oracle import CoverageOracle, UnionOracle, find_uncovered
from .duckdb_oracle import DuckDBOracle
from .projection import MAX_LEVEL
from .rect import LatLngRect
from .serialize import cells_to_tokens, encode_cells


def _add_rect_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat-lo", type=float, required=True, help="Southern latitude (degrees)")
    parser.add_argument("--lng-lo", type=float, required=True, help="Western longitude (degrees)")
    parser.add_argument("--lat-hi", type=float, required=True, help="Northern latitude (degrees)")
    parser.add_argument(
        "--lng-hi",
        type=float,
        required=True,
        help="Eastern longitude (degrees); less than --lng-lo crosses the antimeridian",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cellcover",
        description="Compute multi-resolution cell coverings of lat/lng rectangles",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Cover command
    cover_parser = subparsers.add_parser(
        "cover",
        help="Cover a rectangle with index cells",
    )
    _add_rect_arguments(cover_parser)
    cover_parser.add_argument(
        "--level",
        type=int,
        default=None,
        help="Cover a single level instead of the full index",
    )
    cover_parser.add_argument(
        "--highest-level",
        type=int,
        default=HIGHEST_INDEX_LEVEL,
        help=f"Finest index level (default: {HIGHEST_INDEX_LEVEL})",
    )
    cover_parser.add_argument(
        "--lowest-level",
        type=int,
        default=LOWEST_INDEX_LEVEL,
        help=f"Coarsest index level (default: {LOWEST_INDEX_LEVEL})",
    )
    cover_parser.add_argument(
        "--max-cells",
        type=int,
        default=DEFAULT_MAX_CELLS,
        help=f"Coverer cell budget per level (default: {DEFAULT_MAX_CELLS})",
    )
    cover_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Compute levels on a thread pool of this size",
    )
    cover_parser.add_argument(
        "--format",
        choices=["tokens", "ids", "binary"],
        default="tokens",
        help="Output format (default: tokens)",
    )
    cover_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output file path (default: stdout; required for binary)",
    )
    cover_parser.add_argument(
        "--verify",
        action="store_true",
        help="Check the covering against sampled points of the rectangle",
    )
    cover_parser.add_argument(
        "--oracle",
        choices=["memory", "duckdb"],
        default="memory",
        help="Oracle used by --verify (default: memory)",
    )
    cover_parser.add_argument(
        "--samples",
        type=int,
        default=256,
        help="Number of sample points for --verify (default: 256)",
    )

    # Levels command
    subparsers.add_parser(
        "levels",
        help="Show approximate cell sizes per level",
    )

    # Cell command
    cell_parser = subparsers.add_parser(
        "cell",
        help="Describe a cell given a token or a point",
    )
    cell_parser.add_argument("token", nargs="?", help="Cell token")
    cell_parser.add_argument("--lat", type=float, help="Latitude of a point (degrees)")
    cell_parser.add_argument("--lng", type=float, help="Longitude of a point (degrees)")
    cell_parser.add_argument(
        "--level",
        type=int,
        default=HIGHEST_INDEX_LEVEL,
        help=f"Level of the cell containing the point (default: {HIGHEST_INDEX_LEVEL})",
    )

    return parser


def _make_oracle(kind: str, cells: List[CellId]) -> CoverageOracle:
    if kind == "duckdb":
        return DuckDBOracle(cells)
    return UnionOracle(cells)


def cmd_cover(args: argparse.Namespace) -> int:
    """Handle the cover command."""
    rect = LatLngRect.from_degrees(args.lat_lo, args.lng_lo, args.lat_hi, args.lng_hi)

    if args.level is not None:
        highest, lowest = args.level, args.level
    else:
        highest, lowest = args.highest_level, args.lowest_level

    layers = cover_by_level(
        rect,
        highest_level=highest,
        lowest_level=lowest,
        max_cells=args.max_cells,
        workers=args.workers,
    )
    cells = [cell for layer in layers.values() for cell in layer]

    print(f"Covered rect with {len(cells)} cells:", file=sys.stderr)
    for level, layer in layers.items():
        print(f"  Level {level}: {len(layer)} cells", file=sys.stderr)

    if args.verify:
        failed = 0
        for level, layer in layers.items():
            oracle = _make_oracle(args.oracle, layer)
            try:
                missing = find_uncovered(rect, layer, oracle=oracle, sample_count=args.samples)
            finally:
                if isinstance(oracle, DuckDBOracle):
                    oracle.close()
            if missing:
                failed += 1
                lat, lng = missing[0]
                print(
                    f"  Level {level}: {len(missing)} uncovered samples, e.g. ({lat:.6f}, {lng:.6f})",
                    file=sys.stderr,
                )
        if failed:
            print(f"Verification failed on {failed} levels", file=sys.stderr)
            return 1
        print(f"Verified {len(layers)} levels with {args.samples} samples each", file=sys.stderr)

    if args.format == "binary":
        if args.output is None:
            print("Error: --output is required for binary format", file=sys.stderr)
            return 1
        data = encode_cells(cells)
        args.output.write_bytes(data)
        print(f"Wrote {len(data)} bytes to {args.output}", file=sys.stderr)
        return 0

    if args.format == "ids":
        lines = [str(cell.id) for cell in cells]
    else:
        lines = cells_to_tokens(cells)

    text = "\n".join(lines) + ("\n" if lines else "")
    if args.output:
        args.output.write_text(text)
        print(f"Wrote {len(lines)} cells to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(text)
    return 0


def cmd_levels(args: argparse.Namespace) -> int:
    """Handle the levels command."""
    print("Approximate cell edge length per level:")
    for level in range(MAX_LEVEL + 1):
        degrees = average_edge_degrees(level)
        km = degrees * 111.195
        marker = "  (index)" if LOWEST_INDEX_LEVEL <= level <= HIGHEST_INDEX_LEVEL else ""
        print(f"  Level {level:2d}: {degrees:12.6f} deg  ~{km:12.4f} km{marker}")
    return 0


def cmd_cell(args: argparse.Namespace) -> int:
    """Handle the cell command."""
    if args.token:
        cell = CellId.from_token(args.token)
    elif args.lat is not None and args.lng is not None:
        cell = CellId.from_lat_lng(args.lat, args.lng, args.level)
    else:
        print("Error: give a token or both --lat and --lng", file=sys.stderr)
        return 1

    if not cell.is_valid():
        print(f"Error: invalid cell {args.token!r}", file=sys.stderr)
        return 1

    lat, lng = cell.to_lat_lng()
    print(f"Token:    {cell.to_token()}")
    print(f"Id:       {cell.id}")
    print(f"Face:     {cell.face}")
    print(f"Level:    {cell.level}")
    print(f"Position: {cell.position}")
    print(f"Center:   ({lat:.6f}, {lng:.6f})")
    print(f"Range:    {cell.range_min().id} .. {cell.range_max().id}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "cover":
            return cmd_cover(args)
        elif args.command == "levels":
            return cmd_levels(args)
        elif args.command == "cell":
            return cmd_cell(args)
        else:
            parser.print_help()
            return 1
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
