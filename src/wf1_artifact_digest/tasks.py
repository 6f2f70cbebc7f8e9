"""WF1: Artifact Digest - Tasks.

Daily pipeline that reads the analysis artifacts already in the object
store, resolves the latest bundle per symbol, ranks the strongest signal
of the trailing window, parses the newest spread report, and renders a
markdown digest. Read-only: nothing is written back to the store.

Schedule: Daily after the analysis job (10:30 UTC)
Node: Any Pi 4 Worker

Task chain:
    resolve_run_date
            │
      select_symbols
            │
      ┌─────┼──────────────┐
      │     │              │
  load_     compute_       load_
  latest_   window_        spread_       ← PARALLEL
  snapshots strongest      summaries
      │     │              │
      └─────┼──────────────┘
            │
      generate_digest_report

Important Flytekit constraints:
- Dict[str, str] for complex inter-task data (JSON serialization)
- Lazy imports inside task functions
- Per-symbol failures are recorded as a "status" in the payload, not raised
"""

import json
import logging
from dataclasses import asdict
from typing import Dict, List, Optional

from flytekit import task, Resources

from src.shared.models import Signal

logger = logging.getLogger(__name__)


# ============================================================
# Helper functions (not Flyte tasks, called inside tasks)
# ============================================================

def _signal_dict(signal: Optional[Signal]) -> Optional[dict]:
    if signal is None:
        return None
    return {
        "name": signal.name,
        "description": signal.description,
        "strength": signal.strength,
        "category": signal.category,
    }


def _snapshot_payload(bundle) -> dict:
    """Summarize an ArtifactBundle into JSON-safe primitives."""
    from src.shared.ranking import strongest_of_day

    primary = bundle.primary
    return {
        "status": "ok",
        "partition": bundle.partition,
        "kinds": [kind.value for kind in bundle.kinds],
        "price": bundle.signals.price if bundle.signals is not None else None,
        "overall_bias": primary.overall_bias,
        "recommendation": primary.recommendation,
        "signal_count": len(primary.signals),
        "strongest": _signal_dict(strongest_of_day(primary.signals)),
        "risk": primary.risk,
        "key_levels": primary.key_levels,
    }


def _report_payload(report) -> dict:
    from src.shared.models import indicator_to_json

    return {
        "status": "ok",
        "ticker": report.ticker,
        "date": report.date,
        "reference_price": report.reference_price,
        "indicators": {name: indicator_to_json(v) for name, v in report.indicators.items()},
        "spreads": [asdict(spread) for spread in report.spreads],
    }


def _error_payload(status: str, error: Exception) -> dict:
    return {"status": status, "detail": str(error)}


# ============================================================
# Flyte Tasks
# ============================================================

@task(
    requests=Resources(cpu="100m", mem="128Mi"),
    limits=Resources(cpu="200m", mem="256Mi"),
)
def resolve_run_date(run_date: str) -> str:
    """Resolve empty run_date to today's date (UTC).

    Args:
        run_date: Target date (YYYY-MM-DD). Empty = today.

    Returns:
        Resolved date string in YYYY-MM-DD format.
    """
    from datetime import datetime, timezone

    if run_date:
        # Raises ValueError on a malformed date before any S3 traffic
        datetime.strptime(run_date, "%Y-%m-%d")
        return run_date
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


@task(
    requests=Resources(cpu="100m", mem="128Mi"),
    limits=Resources(cpu="200m", mem="256Mi"),
)
def select_symbols(symbols: List[str]) -> List[str]:
    """Normalize requested symbols, or discover all symbols in the store.

    Args:
        symbols: Requested tickers. Empty = every symbol with a signals
            or gemini-analysis artifact.

    Returns:
        Sorted, upper-case, de-duplicated symbols.
    """
    requested = sorted({s.strip().upper() for s in symbols if s.strip()})
    if requested:
        return requested

    from src.shared.artifacts import list_symbols

    return list_symbols()


@task(
    requests=Resources(cpu="200m", mem="256Mi"),
    limits=Resources(cpu="500m", mem="512Mi"),
)
def load_latest_snapshots(symbols: List[str]) -> Dict[str, str]:
    """Resolve the latest artifact bundle for every symbol.

    Returns:
        Dict mapping symbol -> JSON string. "status" is one of
        "ok", "not_found", "malformed", "store_error".
    """
    from src.shared.errors import ArtifactNotFoundError, ArtifactStoreError, MalformedArtifactError
    from src.shared.resolver import resolve_latest
    from src.shared.storage import get_s3_client

    client = get_s3_client()
    result = {}
    for symbol in symbols:
        try:
            payload = _snapshot_payload(resolve_latest(symbol, client=client))
        except ArtifactNotFoundError as e:
            payload = _error_payload("not_found", e)
        except MalformedArtifactError as e:
            logger.warning("Skipping %s: %s", symbol, e)
            payload = _error_payload("malformed", e)
        except ArtifactStoreError as e:
            logger.warning("Skipping %s: %s", symbol, e)
            payload = _error_payload("store_error", e)
        result[symbol] = json.dumps(payload)

    return result


@task(
    requests=Resources(cpu="200m", mem="256Mi"),
    limits=Resources(cpu="500m", mem="512Mi"),
)
def compute_window_strongest(
    symbols: List[str],
    run_date: str,
    window_days: int,
) -> Dict[str, str]:
    """Strongest signal per symbol over the window ending at run_date.

    Returns:
        Dict mapping symbol -> JSON string. "status" is one of
        "ok", "no_signal", "malformed", "store_error".
    """
    from src.shared.errors import ArtifactStoreError, MalformedArtifactError
    from src.shared.ranking import strongest_over_window
    from src.shared.storage import get_s3_client

    client = get_s3_client()
    result = {}
    for symbol in symbols:
        try:
            best = strongest_over_window(symbol, days=window_days, end_date=run_date, client=client)
        except MalformedArtifactError as e:
            logger.warning("Window ranking failed for %s: %s", symbol, e)
            payload = _error_payload("malformed", e)
        except ArtifactStoreError as e:
            logger.warning("Window ranking failed for %s: %s", symbol, e)
            payload = _error_payload("store_error", e)
        else:
            if best is None:
                payload = {"status": "no_signal"}
            else:
                payload = {"status": "ok", "date": best.date, "signal": _signal_dict(best.signal)}
        result[symbol] = json.dumps(payload)

    return result


@task(
    requests=Resources(cpu="200m", mem="256Mi"),
    limits=Resources(cpu="500m", mem="512Mi"),
)
def load_spread_summaries(symbols: List[str]) -> Dict[str, str]:
    """Parse the newest spread report for every symbol.

    Returns:
        Dict mapping symbol -> JSON string. "status" is one of
        "ok", "empty", "not_found", "malformed", "store_error".
    """
    from src.shared.errors import ArtifactNotFoundError, ArtifactStoreError, MalformedArtifactError
    from src.shared.resolver import resolve_latest_report
    from src.shared.storage import get_s3_client

    client = get_s3_client()
    result = {}
    for symbol in symbols:
        try:
            report = resolve_latest_report(symbol, client=client)
        except ArtifactNotFoundError as e:
            payload = _error_payload("not_found", e)
        except MalformedArtifactError as e:
            logger.warning("Spread report unreadable for %s: %s", symbol, e)
            payload = _error_payload("malformed", e)
        except ArtifactStoreError as e:
            logger.warning("Spread report unavailable for %s: %s", symbol, e)
            payload = _error_payload("store_error", e)
        else:
            payload = {"status": "empty"} if report is None else _report_payload(report)
        result[symbol] = json.dumps(payload)

    return result


@task(
    requests=Resources(cpu="200m", mem="256Mi"),
    limits=Resources(cpu="500m", mem="512Mi"),
)
def generate_digest_report(
    run_date: str,
    symbols: List[str],
    snapshots: Dict[str, str],
    window_signals: Dict[str, str],
    spread_summaries: Dict[str, str],
    window_days: int,
) -> str:
    """Render the markdown digest.

    Args:
        run_date: Resolved run date (YYYY-MM-DD).
        symbols: Symbols in report order.
        snapshots: Output from load_latest_snapshots.
        window_signals: Output from compute_window_strongest.
        spread_summaries: Output from load_spread_summaries.
        window_days: Window length, for the section heading.

    Returns:
        Markdown report string.
    """
    lines = []
    lines.append(f"# WF1 Artifact Digest — {run_date}")
    lines.append("")

    if not symbols:
        lines.append("> **No analysis artifacts found in the store.**")
        lines.append("")
        lines.append("*Generated by WF1 Artifact Digest | Not investment advice*")
        return "\n".join(lines)

    # Overview table
    lines.append("## Overview")
    lines.append("")
    lines.append(f"| Symbol | Latest Partition | Bias | Strongest Today | Strongest {window_days}d |")
    lines.append("|--------|------------------|------|-----------------|------------|")
    for symbol in symbols:
        snap = json.loads(snapshots.get(symbol, '{"status": "not_found"}'))
        window = json.loads(window_signals.get(symbol, '{"status": "no_signal"}'))

        if snap["status"] == "ok":
            partition = snap["partition"]
            bias = snap["overall_bias"] or "-"
            today = snap["strongest"]["strength"] if snap["strongest"] else "-"
        else:
            partition, bias, today = "n/a", "-", "-"

        if window["status"] == "ok":
            weekly = f"{window['signal']['strength']} ({window['date']})"
        else:
            weekly = "-"

        lines.append(f"| {symbol} | {partition} | {bias} | {today} | {weekly} |")
    lines.append("")

    # Per-symbol details
    for symbol in symbols:
        snap = json.loads(snapshots.get(symbol, '{"status": "not_found"}'))
        window = json.loads(window_signals.get(symbol, '{"status": "no_signal"}'))
        spreads = json.loads(spread_summaries.get(symbol, '{"status": "not_found"}'))

        lines.append(f"## {symbol}")
        lines.append("")

        if snap["status"] != "ok":
            lines.append(f"> Data not available ({snap['status'].replace('_', ' ')}).")
            lines.append("")
        else:
            lines.append(f"**Partition:** {snap['partition']} ({', '.join(snap['kinds'])})")
            if snap["recommendation"]:
                lines.append(f"**Recommendation:** {snap['recommendation']}")
            if snap["strongest"]:
                s = snap["strongest"]
                lines.append(f"**Strongest Signal:** {s['name']} — {s['strength']} [{s['category']}]")
            for risk in snap["risk"]:
                lines.append(f"- Risk: {risk}")
            for level in snap["key_levels"]:
                lines.append(f"- Key level: {level}")
            lines.append("")

        if window["status"] == "ok":
            s = window["signal"]
            lines.append(
                f"**Strongest {window_days}d Signal:** {s['name']} — {s['strength']} "
                f"on {window['date']}"
            )
            lines.append("")

        if spreads["status"] == "ok":
            lines.append("| Type | Expiration | Strategy | Credit | Max Risk |")
            lines.append("|------|------------|----------|--------|----------|")
            for spread in spreads["spreads"]:
                credit = f"${spread['credit']}" if spread["credit"] else "-"
                risk = f"${spread['max_risk']}" if spread["max_risk"] else "-"
                lines.append(
                    f"| {spread['type']} | {spread['expiration']} | "
                    f"{spread['strategy'] or '-'} | {credit} | {risk} |"
                )
            lines.append("")
        elif spreads["status"] == "empty":
            lines.append("*Latest spread report contains no spreads.*")
            lines.append("")

    # Footer
    lines.append("---")
    lines.append("*Generated by WF1 Artifact Digest | Not investment advice*")

    return "\n".join(lines)
