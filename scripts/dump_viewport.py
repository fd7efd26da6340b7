#!/usr/bin/env python3
"""Run one aggregation cycle against a live backend and dump the result.

Fetches every facility, filters to the given viewport, fetches the rides
of each surviving facility, clusters them for a phone-sized surface and
prints entities, facilities by distance and clusters.

Usage
-----
Set environment variables and run::

    export PLAYMAP_BASE_URL="https://playmap-api.example.com/v1"
    export PLAYMAP_API_TOKEN="..."
    python scripts/dump_viewport.py --center 37.5665 126.9780 --span 0.1 0.1

Options::

    --center LAT LON     Viewport centre (default: Seoul city hall)
    --span DLAT DLON     Viewport span in degrees (default: 0.05 0.05)
    --category C         all | indoor | outdoor (default: all)
    --user LAT LON       Pretend user location for distances
    --width PX           Surface width for clustering (default: 390)
    --height PX          Surface height for clustering (default: 844)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    -v, --verbose        Enable debug logging
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

from playmap import (  # noqa: E402
    CategoryFilter,
    ClusterEngine,
    Coordinate,
    DetailProjectionBuilder,
    PlaymapClient,
    PlaymapConfig,
    PlaymapError,
    Viewport,
    ViewportQueryCoordinator,
)


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--center", nargs=2, type=float, default=(37.5665, 126.9780), metavar=("LAT", "LON"))
    parser.add_argument("--span", nargs=2, type=float, default=(0.05, 0.05), metavar=("DLAT", "DLON"))
    parser.add_argument("--category", choices=[c.value for c in CategoryFilter], default=CategoryFilter.ALL.value)
    parser.add_argument("--user", nargs=2, type=float, default=None, metavar=("LAT", "LON"))
    parser.add_argument("--width", type=int, default=390)
    parser.add_argument("--height", type=int, default=844)
    parser.add_argument("--json", action="store_true", dest="as_json")
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    config = PlaymapConfig.from_env()
    viewport = Viewport.around(args.center[0], args.center[1], args.span[0], args.span[1])
    user = Coordinate(latitude=args.user[0], longitude=args.user[1]) if args.user else None
    projection = DetailProjectionBuilder(config.projection)

    async with PlaymapClient(config) as client:
        coordinator = ViewportQueryCoordinator.from_config(client, config, location_provider=lambda: user)
        result = await coordinator.refresh(viewport, CategoryFilter(args.category))

    if result is None:
        return {}
    clusters = ClusterEngine(config.cluster).cluster(result.entities, viewport, width=args.width, height=args.height)
    return {
        "epoch": result.epoch,
        "facility_count": result.facility_count,
        "failed_facility_ids": list(result.failed_facility_ids),
        "timed_out_facility_ids": list(result.timed_out_facility_ids),
        "entities": [entity.model_dump(mode="json") for entity in result.entities],
        "facilities": [item.model_dump(mode="json") for item in projection.build_facility_list(result, user).items],
        "clusters": [
            {
                "representative": cluster.representative.id,
                "count": cluster.count,
                "marker_size": cluster.marker_size,
                "coordinate": cluster.coordinate.model_dump(),
                "detail": projection.build_cluster(cluster, user).model_dump(mode="json"),
            }
            for cluster in clusters.clusters
        ],
    }


def _format_text(dump: dict[str, Any]) -> str:
    out: list[str] = []
    out.append(_section(f"Cycle {dump.get('epoch')}: {dump.get('facility_count', 0)} facilities"))
    if dump.get("failed_facility_ids") or dump.get("timed_out_facility_ids"):
        out.append(f"  partial: failed={dump['failed_facility_ids']} timed_out={dump['timed_out_facility_ids']}")
    out.append(_section(f"Entities ({len(dump.get('entities', []))})"))
    for entity in dump.get("entities", []):
        facility = entity["facility"]
        ride = entity["ride"]
        out.append(f"  {entity['id']}: {ride['name']} @ {facility['name']} ({ride['category']})")
    out.append(_section(f"Facilities by distance ({len(dump.get('facilities', []))})"))
    for item in dump.get("facilities", []):
        out.append(f"  {item['name']} ({item['ride_count']} rides) - {item['distance_text']}")
    out.append(_section(f"Clusters ({len(dump.get('clusters', []))})"))
    for cluster in dump.get("clusters", []):
        detail = cluster["detail"]
        out.append(f"  [{cluster['count']:>3}] {detail['title']} - {detail['distance_text']}")
    return "\n".join(out)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        dump = asyncio.run(_run(args))
    except PlaymapError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    text = json.dumps(dump, indent=2, ensure_ascii=False) if args.as_json else _format_text(dump)
    if args.output is not None:
        args.output.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
