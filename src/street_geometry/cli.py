#!/usr/bin/env python3
"""
Street Geometry CLI

Command-line interface for resolving street names to OSM way geometries.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .batch import BatchResolver, export, load_queries
from .cache.ttl_cache import TTLCache
from .config_manager import ConfigManager
from .errors import ConfigError, InvalidInputError
from .nearby import NearbyStreetFinder
from .resolver import StreetMatchResolver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="street-geometry",
        description="Resolve informal street names near a point to OpenStreetMap road geometries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve a single street
  %(prog)s resolve --street "Aznar Rd" --city "Cebu City" --barangay "Sambag II" --lat 10.2945 --lon 123.8847

  # Name of the nearest street to a point
  %(prog)s nearby --lat 10.2945 --lon 123.8847

  # Resolve a CSV of queries and export matched ways
  %(prog)s batch queries.csv --output streets.gpkg

  # Write an example configuration file
  %(prog)s init-config street_geometry.yaml
        """
    )

    parser.add_argument(
        '-c', '--config',
        type=Path,
        help='Resolver configuration YAML file (default: built-in settings)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Minimal output (errors only)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    resolve_parser = subparsers.add_parser('resolve', help='Resolve one street name')
    resolve_parser.add_argument('--street', required=True, help='Street name as written')
    resolve_parser.add_argument('--city', default='', help='City name')
    resolve_parser.add_argument('--barangay', default='', help='Barangay / district name')
    resolve_parser.add_argument('--lat', required=True, help='Approximate latitude')
    resolve_parser.add_argument('--lon', required=True, help='Approximate longitude')
    resolve_parser.add_argument('--radius', type=float, help='Primary search radius in meters')

    nearby_parser = subparsers.add_parser('nearby', help='Find the nearest named street')
    nearby_parser.add_argument('--lat', required=True, help='Latitude')
    nearby_parser.add_argument('--lon', required=True, help='Longitude')
    nearby_parser.add_argument('--radius', type=float, help='Search radius in meters (80-800)')

    batch_parser = subparsers.add_parser('batch', help='Resolve a CSV/Excel file of queries')
    batch_parser.add_argument('input_file', type=Path, help='Input file with street_name, city, barangay, lat, lon')
    batch_parser.add_argument(
        '-o', '--output',
        type=Path,
        required=True,
        help='Output GeoJSON (.geojson) or GeoPackage (.gpkg) for matched ways'
    )
    batch_parser.add_argument('--results', type=Path, help='Optional CSV with per-row results')
    batch_parser.add_argument('--no-progress', action='store_true', help='Disable progress bar')

    init_parser = subparsers.add_parser('init-config', help='Write an example configuration file')
    init_parser.add_argument('output', type=Path, help='Path of the YAML file to create')

    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    manager = ConfigManager()

    if args.command == 'init-config':
        manager.save_example_config(args.output)
        print(f"Saved example configuration to {args.output}")
        return 0

    try:
        config = manager.load(args.config)

        if args.command == 'resolve':
            with StreetMatchResolver(config=config) as resolver:
                result = resolver.resolve(
                    args.street, args.city, args.barangay, args.lat, args.lon, radius_m=args.radius
                )
            print(json.dumps(result.to_dict(), indent=2))
            return 0

        if args.command == 'nearby':
            finder = NearbyStreetFinder(config=config, cache=TTLCache(config.cache_ttl_s))
            try:
                street = finder.find(args.lat, args.lon, args.radius)
            finally:
                finder.close()
            if street is None:
                print(json.dumps({"ok": False, "error": "No nearby named street"}))
                return 1
            print(json.dumps(street.to_dict(), indent=2))
            return 0

        if args.command == 'batch':
            return run_batch(args, config)

    except (InvalidInputError, ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 2


def run_batch(args, config) -> int:
    try:
        queries = load_queries(args.input_file)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    with StreetMatchResolver(config=config) as resolver:
        results = BatchResolver(resolver, show_progress=not args.no_progress).run(queries)

    export(results, args.output)

    if args.results:
        args.results.parent.mkdir(parents=True, exist_ok=True)
        results.drop(columns=["feature"]).to_csv(args.results, index=False)

    if not args.quiet:
        matched = int(results["matched"].sum())
        print(f"✅ {matched}/{len(results)} streets matched")
        print(f"   Geometries: {args.output}")
        if args.results:
            print(f"   Results:    {args.results}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
