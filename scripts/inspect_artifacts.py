#!/usr/bin/env python3
"""Inspect analysis artifacts in the object store from the command line.

Runs the same resolution, parsing and ranking code the WF1 digest uses,
without going through Flyte. Read-only.

Usage:
    # Every symbol with signals / gemini-analysis artifacts
    python scripts/inspect_artifacts.py symbols

    # Symbols with spread reports
    python scripts/inspect_artifacts.py symbols --reports

    # Latest bundle for a symbol (newest partition with a match)
    python scripts/inspect_artifacts.py latest AAPL

    # Bundle of one specific partition
    python scripts/inspect_artifacts.py latest AAPL --date 2026-02-08

    # Newest spread report, parsed
    python scripts/inspect_artifacts.py report AAPL

    # Parse a local report file instead
    python scripts/inspect_artifacts.py report AAPL --file ./AAPL_spread_analysis.md

    # Strongest signal over the last 7 days (or a custom window)
    python scripts/inspect_artifacts.py strongest AAPL --days 7 --end 2026-02-08
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.shared.config import LOG_FORMAT, LOG_LEVEL, SIGNAL_WINDOW_DAYS  # noqa: E402
from src.shared.errors import ArtifactError  # noqa: E402
from src.shared.models import indicator_to_json  # noqa: E402

logger = logging.getLogger("inspect_artifacts")


def _to_jsonable(value):
    """asdict() output with indicator values flattened to number / text."""
    if isinstance(value, dict):
        if set(value) == {"value"} or set(value) == {"text"}:
            return value.get("value", value.get("text"))
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def cmd_symbols(args) -> int:
    from src.shared.artifacts import list_report_symbols, list_symbols

    symbols = list_report_symbols() if args.reports else list_symbols()
    for symbol in symbols:
        print(symbol)
    print(f"\nTotal: {len(symbols)} symbols", file=sys.stderr)
    return 0


def cmd_latest(args) -> int:
    from src.shared.resolver import resolve_for_date, resolve_latest

    if args.date:
        bundle = resolve_for_date(args.symbol, args.date)
    else:
        bundle = resolve_latest(args.symbol, listing=args.listing)

    print(f"=== {bundle.symbol} @ {bundle.partition} ===")
    print(f"Kinds: {', '.join(k.value for k in bundle.kinds)}")
    print(json.dumps(_to_jsonable(asdict(bundle)), indent=2))
    return 0


def cmd_report(args) -> int:
    from src.shared.report_parser import parse_report
    from src.shared.resolver import resolve_latest_report

    if args.file:
        report = parse_report(Path(args.file).read_text(encoding="utf-8"))
    else:
        report = resolve_latest_report(args.symbol)

    if report is None:
        print(f"No spreads found for {args.symbol.upper()}")
        return 0

    print(f"=== {report.ticker or args.symbol.upper()} spread report ({report.date}) ===")
    if report.reference_price is not None:
        print(f"Reference price: ${report.reference_price:,.2f}")
    for name, value in report.indicators.items():
        print(f"  {name}: {indicator_to_json(value)}")
    print()
    for i, spread in enumerate(report.spreads, 1):
        print(f"{i}. {spread.type} ({spread.expiration})")
        print(f"   Strategy:  {spread.strategy or '-'}")
        print(f"   Credit:    {spread.credit or '-'}   Max risk: {spread.max_risk or '-'}")
        if spread.rationale:
            print(f"   Rationale: {spread.rationale}")
    return 0


def cmd_strongest(args) -> int:
    from src.shared.ranking import strongest_over_window

    best = strongest_over_window(args.symbol, days=args.days, end_date=args.end)
    if best is None:
        print(f"No signals for {args.symbol.upper()} in the last {args.days} days")
        return 0

    s = best.signal
    print(f"{best.date}: {s.name} — {s.strength} [{s.category}]")
    if s.description:
        print(f"  {s.description}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Inspect analysis artifacts in the object store")
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        help=f"Logging level (default: {LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command", required=True)

    p_symbols = sub.add_parser("symbols", help="List available symbols")
    p_symbols.add_argument("--reports", action="store_true",
                           help="List symbols with spread reports instead")
    p_symbols.set_defaults(func=cmd_symbols)

    p_latest = sub.add_parser("latest", help="Resolve the latest artifact bundle")
    p_latest.add_argument("symbol")
    p_latest.add_argument("--date", help="Load this partition (YYYY-MM-DD) instead")
    p_latest.add_argument("--listing", choices=["flat", "per_partition"],
                          help="Listing strategy (default: from config)")
    p_latest.set_defaults(func=cmd_latest)

    p_report = sub.add_parser("report", help="Parse the newest spread report")
    p_report.add_argument("symbol")
    p_report.add_argument("--file", help="Parse a local markdown file instead")
    p_report.set_defaults(func=cmd_report)

    p_strongest = sub.add_parser("strongest", help="Strongest signal over a window")
    p_strongest.add_argument("symbol")
    p_strongest.add_argument("--days", type=int, default=SIGNAL_WINDOW_DAYS,
                             help=f"Window length in days (default: {SIGNAL_WINDOW_DAYS})")
    p_strongest.add_argument("--end", default="",
                             help="Last day of the window (YYYY-MM-DD, default: today)")
    p_strongest.set_defaults(func=cmd_strongest)

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    try:
        sys.exit(args.func(args))
    except ArtifactError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
