#!/usr/bin/env python3
"""Watch the live vehicle feed from the terminal.

Polls the feed through :class:`pybusmap.LiveMapClient` and prints the
annotated vehicle list after every state change, nearest first.

Usage
-----
::

    python scripts/watch_feed.py --base-url http://localhost:5000

Options::

    --base-url URL      Backend serving /api/buses (default: BUSMAP_BASE_URL)
    --lat/--lon         Fixed viewer position instead of IP geolocation
    --no-geolocate      Skip geolocation and use the fallback position
    --nearby-only       Only list vehicles within the nearby threshold
    --once              Fetch a single snapshot and exit
    --json              Output machine-readable JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from pybusmap import (  # noqa: E402
    AnnotatedVehicle,
    IpGeolocator,
    LiveMapClient,
    LiveMapConfig,
    StateChange,
    StaticGeolocator,
)
from pybusmap.location import Geolocator  # noqa: E402


def _render(client: LiveMapClient, *, nearby_only: bool, json_mode: bool) -> str:
    vehicles: list[AnnotatedVehicle] = sorted(client.vehicles(), key=lambda v: v.distance_km)
    if nearby_only:
        vehicles = [v for v in vehicles if v.is_nearby]

    if json_mode:
        payload: dict[str, Any] = {
            "error": client.error,
            "center": client.map_center.model_dump(),
            "vehicles": [v.model_dump(mode="json") for v in vehicles],
        }
        return json.dumps(payload, default=str)

    center = client.map_center
    lines = [
        f"── viewer {center.latitude:.4f},{center.longitude:.4f}"
        f"{' (fallback)' if center.is_fallback else ''} ── {len(vehicles)} vehicles",
    ]
    if client.error:
        lines.append(f"  Error: {client.error}")
    for v in vehicles:
        marker = "*" if v.is_nearby else " "
        lines.append(f" {marker} {v.id:<12} route {v.route_id:<8} {v.distance_label:>12}  {v.color}")
    return "\n".join(lines)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print the live vehicle feed as the map would show it.")
    parser.add_argument("--base-url", help="Backend base URL (default: BUSMAP_BASE_URL or localhost)")
    parser.add_argument("--lat", type=float, help="Fixed viewer latitude")
    parser.add_argument("--lon", type=float, help="Fixed viewer longitude")
    parser.add_argument("--no-geolocate", action="store_true", help="Use the fallback viewer position")
    parser.add_argument("--nearby-only", action="store_true", help="Only list nearby vehicles")
    parser.add_argument("--once", action="store_true", help="Fetch one snapshot and exit")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    config = LiveMapConfig.from_env(**overrides)

    async with aiohttp.ClientSession() as http:
        geolocator: Geolocator | None
        if args.lat is not None and args.lon is not None:
            geolocator = StaticGeolocator(args.lat, args.lon)
        elif args.no_geolocate:
            geolocator = None
        else:
            geolocator = IpGeolocator(http, config.geolocation_url)

        async with LiveMapClient(config, session=http, geolocator=geolocator) as client:
            if args.once:
                await client.resolve_viewer()
                await client.refresh()
                print(_render(client, nearby_only=args.nearby_only, json_mode=args.json_mode))
                return

            changed = asyncio.Event()

            def _on_change(_change: StateChange) -> None:
                changed.set()

            client.subscribe(_on_change)
            await client.start()
            while True:
                await changed.wait()
                changed.clear()
                print(_render(client, nearby_only=args.nearby_only, json_mode=args.json_mode), flush=True)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
