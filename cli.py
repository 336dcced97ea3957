#!/usr/bin/env python
"""
Command-line interface for Amenity Finder

Usage:
    python cli.py fetch --lat 52.520008 --lon 13.404954 --output amenities.json
    python cli.py query --lat 52.520008 --lon 13.404954 --no-glass
    python cli.py batch --input locations.csv --output ./amenities/
"""

import os
import re
import sys
import csv
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from loguru import logger
from amenity_finder.config import get_config, validate_config
from amenity_finder.models import AmenityReport
from amenity_finder.overpass import (
    OverpassAPIClient,
    ResultCache,
    build_overpass_query,
    normalize_filters,
)
from amenity_finder.refresher import RefreshController


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def filters_from_args(args):
    return normalize_filters({
        "toilets": not args.no_toilets,
        "fountains": not args.no_fountains,
        "glass": not args.no_glass,
    })


def fetch_report(controller, lat, lon, radius, timeout):
    """Recenter the controller on (lat, lon) and wait for the result"""
    controller.set_viewport((lat, lon), radius_hint=radius)
    if not controller.wait_until_idle(timeout):
        logger.warning(f"Timed out after {timeout}s waiting for Overpass")
        # Whatever the controller holds belongs to an earlier location
        return AmenityReport.build(
            lat, lon, radius, controller.filters, [], error=f"Timed out after {timeout}s"
        )
    return AmenityReport.build(
        lat, lon, radius, controller.filters, controller.points, error=controller.last_error
    )


def report_name(name, index, taken):
    """File stem for a batch row: no directory parts, unique within the run"""
    stem = os.path.basename((name or "").strip().replace("\\", "/"))
    stem = re.sub(r"[^\w.-]+", "_", stem).strip("._")
    if not stem:
        stem = f"location_{index:03d}"
    unique = stem
    suffix = index
    while unique in taken:
        unique = f"{stem}_{suffix:03d}"
        suffix += 1
    taken.add(unique)
    return unique


def write_report(report, output_path):
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report.model_dump_json(indent=2))


def build_controller(filters):
    config = get_config()
    validate_config(config)
    client = OverpassAPIClient(config.api)
    cache = ResultCache(ttl_s=config.cache.ttl_s)
    return RefreshController(client, cache, on_update=lambda points: None, filters=filters)


def cmd_fetch(args):
    """Fetch amenities around a single location"""
    setup_logging(args.verbose)

    filters = filters_from_args(args)
    logger.info(f"Fetching amenities within {args.radius}m of ({args.lat}, {args.lon})")

    controller = build_controller(filters)
    try:
        report = fetch_report(controller, args.lat, args.lon, args.radius, args.timeout)
    finally:
        controller.close()

    if report.error:
        logger.error(f"Failed to fetch amenities: {report.error}")
        return 1

    logger.info(f"✓ Found {len(report.points)} amenities: {report.counts}")
    if args.output:
        write_report(report, args.output)
        logger.info(f"✓ Saved: {args.output}")
    else:
        print(report.model_dump_json(indent=2))
    return 0


def cmd_query(args):
    """Print the Overpass QL that would be sent"""
    filters = filters_from_args(args)
    print(build_overpass_query(args.lat, args.lon, args.radius, filters, get_config().api.query_timeout_s))
    return 0


def cmd_batch(args):
    """Fetch amenities for multiple locations from CSV"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    locations = []
    with open(args.input, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                locations.append({
                    "name": row.get("name", ""),
                    "lat": float(row["lat"]),
                    "lon": float(row["lon"]),
                })
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid row: {e}")

    if not locations:
        logger.error("No valid locations found in CSV")
        return 1

    logger.info(f"Processing {len(locations)} locations...")
    os.makedirs(args.output, exist_ok=True)

    # One controller, one cache: repeated locations are served from memory
    controller = build_controller(filters_from_args(args))
    success = 0
    failed = 0
    taken = set()
    try:
        for i, loc in enumerate(locations, 1):
            name = report_name(loc.get("name"), i, taken)
            logger.info(f"[{i}/{len(locations)}] {name}: ({loc['lat']}, {loc['lon']})")
            report = fetch_report(controller, loc["lat"], loc["lon"], args.radius, args.timeout)
            if report.error:
                logger.error(f"  ✗ Failed: {report.error}")
                failed += 1
                continue
            output_path = os.path.join(args.output, f"{name}.json")
            write_report(report, output_path)
            logger.info(f"  ✓ {len(report.points)} amenities -> {output_path}")
            success += 1
    finally:
        controller.close()

    logger.info(f"Batch complete: {success} succeeded, {failed} failed")
    return 0 if failed == 0 else 1


def add_location_arguments(p, with_location=True):
    if with_location:
        p.add_argument("--lat", type=float, required=True, help="Latitude")
        p.add_argument("--lon", type=float, required=True, help="Longitude")
    p.add_argument("--radius", "-r", type=float, default=get_config().refresh.base_radius_m,
                   help="Search radius in meters")
    p.add_argument("--no-toilets", action="store_true", help="Skip public toilets")
    p.add_argument("--no-fountains", action="store_true", help="Skip drinking water")
    p.add_argument("--no-glass", action="store_true", help="Skip glass recycling")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Amenity Finder CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Fetch amenities around a location:
    python cli.py fetch --lat 52.520008 --lon 13.404954 --output amenities.json

  Show the Overpass query only:
    python cli.py query --lat 52.520008 --lon 13.404954 --no-glass

  Batch fetch from CSV:
    python cli.py batch --input locations.csv --output ./amenities/
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Fetch amenities around a location")
    add_location_arguments(fetch_parser)
    fetch_parser.add_argument("--output", "-o", help="Output JSON file (prints to stdout if omitted)")
    fetch_parser.add_argument("--timeout", type=float, default=120.0, help="Give up waiting after N seconds")
    fetch_parser.set_defaults(func=cmd_fetch)

    # Query command
    query_parser = subparsers.add_parser("query", help="Print the Overpass QL for a location")
    add_location_arguments(query_parser)
    query_parser.set_defaults(func=cmd_query)

    # Batch command
    batch_parser = subparsers.add_parser("batch", help="Batch fetch from CSV file")
    add_location_arguments(batch_parser, with_location=False)
    batch_parser.add_argument("--input", "-i", required=True, help="Input CSV file (columns: name,lat,lon)")
    batch_parser.add_argument("--output", "-o", default="output", help="Output directory")
    batch_parser.add_argument("--timeout", type=float, default=120.0, help="Per-location wait limit in seconds")
    batch_parser.set_defaults(func=cmd_batch)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
