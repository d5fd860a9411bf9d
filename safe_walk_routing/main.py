#!/usr/bin/env python3
"""
Safe Walk Routing - Command Line Interface

Simple CLI entry point: computes safe walking routes between two points
using OpenStreetMap data and, optionally, a local crime GeoJSON file.

Usage:
    python -m safe_walk_routing.main --crime-data crimes.geojson
    python -m safe_walk_routing.main --from 51.5079,-0.1281 --to 51.5138,-0.0984
"""

import argparse
import logging
import sys
from typing import Tuple

from .config import RoutingConfig
from .algorithms import SafeRouteEngine
from .data import GeoPoint
from .data.data_loader import default_crime_data_path
from .errors import RoutingError

# Trafalgar Square to St Paul's Cathedral
DEFAULT_START = (51.5079, -0.1281)
DEFAULT_END = (51.5138, -0.0984)


def _parse_point(text: str) -> Tuple[float, float]:
    try:
        lat, lon = (float(part) for part in text.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected 'lat,lon', got '{text}'")
    return lat, lon


def main(argv=None) -> int:
    """
    Demonstration of the safe walk routing engine.
    """
    parser = argparse.ArgumentParser(description="Safe Walk Routing demo")
    parser.add_argument("--from", dest="start", type=_parse_point, default=DEFAULT_START,
                        help="Start point as 'lat,lon'")
    parser.add_argument("--to", dest="end", type=_parse_point, default=DEFAULT_END,
                        help="End point as 'lat,lon'")
    parser.add_argument("--crime-data", default=default_crime_data_path(),
                        help="Crime GeoJSON file (default: $SAFE_WALK_CRIME_DATA)")
    parser.add_argument("--preset", default="balanced",
                        choices=["balanced", "safety_first", "low_latency"],
                        help="Routing config preset")
    parser.add_argument("--hour", type=int, choices=range(24), metavar="0-23",
                        help="Departure hour; adapts scoring weights to the time of day")
    parser.add_argument("--verbose", action="store_true", help="Show engine logs")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("🚀 Safe Walk Routing")
    print("=" * 50)

    origin = GeoPoint(*args.start)
    destination = GeoPoint(*args.end)
    print(f"\n🗺️ Route request:")
    print(f"   Start: {origin.as_tuple()}")
    print(f"   End: {destination.as_tuple()}")
    if args.hour is not None:
        print(f"   Departure: {args.hour:02d}:00")
    if args.crime_data:
        print(f"   Crime data: {args.crime_data}")
    else:
        print("   Crime data: none (crime scores will lower confidence)")

    print(f"\n⚙️ Initializing engine ({args.preset} preset)...")
    engine = SafeRouteEngine.with_openstreetmap(args.crime_data, RoutingConfig.from_preset(args.preset))

    print("\n🔍 Calculating safe routes...")
    try:
        route_set = engine.find_safe_routes_sync(origin, destination, departure_hour=args.hour)
    except RoutingError as e:
        print(f"❌ {e.code}: {e.message}")
        return 1

    print(f"✅ {len(route_set.routes)} routes found (selection: {route_set.selection_mode})")
    for route in route_set.routes:
        marker = "⭐" if route.is_selected else "  "
        b = route.breakdown
        print(f"\n{marker} Route {route.route_index + 1}: {route.label}")
        print(f"   Distance: {route.distance_m:.0f}m ({route.duration_s / 60:.0f} min)")
        print(f"   Safety: {b.overall}/100 (confidence {route.confidence:.1f})")
        print(f"   Crime {b.crime} | Lighting {b.lighting} | Road {b.road_type} | "
              f"Activity {b.open_places} | CCTV {b.cctv} | Traffic {b.traffic}")

    timing = route_set.metadata.get('timing', {})
    if timing:
        print(f"\n⏱️ Total {timing.get('total_ms', 0):.0f}ms "
              f"(fetch {timing.get('data_fetch_ms', 0):.0f}ms, "
              f"pathfinding {timing.get('pathfind_ms', 0):.0f}ms)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
