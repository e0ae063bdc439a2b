# =============================================================================
# RAIN ALERT ENGINE
# Module: main.py
# Purpose: CLI entry point for running decision cycles
# =============================================================================
#
# USAGE:
# python main.py --lat 34.85 --lon -82.39
# python main.py --lat 34.85 --lon -82.39 --cycle freeze --json
# python main.py --lat 34.85 --lon -82.39 --config path/to/alert.yaml -v
#
# OUTPUT:
# - Human-readable summary per cycle (default)
# - DecisionResult JSON per cycle (--json)
#
# EXIT CODES:
# 0  cycles completed (including NO_DATA results)
# 2  invalid configuration or arguments
#
# =============================================================================

import argparse
import json
import logging
import sys
from typing import List, Optional

from rain_alert import (
    AlertEngine,
    ConfigError,
    Coordinate,
    DecisionResult,
    create_engine,
)
from shared.enums import DecisionStatus
from shared.logging_config import get_engine_logger, setup_logging

logger = get_engine_logger("cli")


def format_summary(result: DecisionResult) -> str:
    """Render one DecisionResult as a console summary."""
    lines = []
    title = result.cycle.value.upper()

    if result.status == DecisionStatus.NO_DATA:
        lines.append(f"{title}: NO DATA (no station returned a usable observation)")
        return "\n".join(lines)

    verdict = "ALERT" if result.triggered else "clear"
    lines.append(
        f"{title}: {verdict} | {result.positive_count}/{result.stations_used} stations "
        f"({result.weighted_percentage:.1f}%, threshold {result.threshold_used:g})"
    )
    if result.confidence is not None:
        lines.append(
            f"  Confidence: {result.confidence.level.value} ({result.confidence.score:.2f})"
        )
        for factor in result.confidence.factors:
            lines.append(f"    - {factor}")

    lines.append("  Stations:")
    for c in result.contributions:
        marker = "+" if c.is_positive else "-"
        temp = f"{c.temperature_f:.1f}F" if c.temperature_f is not None else "n/a"
        precip = f"{c.precipitation_in:.2f}in" if c.precipitation_in is not None else "n/a"
        lines.append(
            f"    [{marker}] {c.station.name} ({c.station.station_id}) "
            f"{c.distance_km:.1f} km | {temp} | {precip} | {c.text_description or ''}"
        )
    return "\n".join(lines)


def run_cycles(engine: AlertEngine, cycle: str) -> List[DecisionResult]:
    results = []
    if cycle in ("rain", "both"):
        results.append(engine.run_rain_cycle())
    if cycle in ("freeze", "both"):
        results.append(engine.run_freeze_cycle())
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rain Alert Engine - multi-station rain and freeze decisions"
    )
    parser.add_argument("--lat", type=float, required=True, help="Latitude (decimal degrees)")
    parser.add_argument("--lon", type=float, required=True, help="Longitude (decimal degrees)")
    parser.add_argument(
        "--cycle",
        choices=["rain", "freeze", "both"],
        default="both",
        help="Which decision cycle to run (default: both)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to alert YAML config (default: config/alert.yaml)",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--log-file", action="store_true", help="Also log to logs/engine/")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        file_output=args.log_file,
    )

    try:
        location = Coordinate(latitude=args.lat, longitude=args.lon)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        engine = create_engine(location, config_path=args.config)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"ERROR: Cannot read config: {e}", file=sys.stderr)
        return 2

    results = run_cycles(engine, args.cycle)
    logger.debug(f"Completed {len(results)} cycle(s)")

    if args.json:
        if len(results) == 1:
            print(results[0].to_json())
        else:
            print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        print(f"Location: {location.latitude:.4f}, {location.longitude:.4f}")
        print("=" * 60)
        for result in results:
            print(format_summary(result))
            print("-" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
