"""WF1: Artifact Digest - Workflow.

Pipeline:
    resolve_run_date -> select_symbols -> [load_latest_snapshots |
    compute_window_strongest | load_spread_summaries] -> generate_digest_report

Reads the artifacts the analysis job leaves in the object store and
summarizes them per symbol. Nothing is written back.

Example local run:
    pyflyte run src/wf1_artifact_digest/workflow.py artifact_digest_workflow \\
        --run_date 2026-02-08 --window_days 7
"""

from typing import List

from flytekit import workflow

from src.shared.config import DIGEST_SYMBOLS, SIGNAL_WINDOW_DAYS
from src.wf1_artifact_digest.tasks import (
    resolve_run_date,
    select_symbols,
    load_latest_snapshots,
    compute_window_strongest,
    load_spread_summaries,
    generate_digest_report,
)


@workflow
def artifact_digest_workflow(
    symbols: List[str] = DIGEST_SYMBOLS,
    run_date: str = "",
    window_days: int = SIGNAL_WINDOW_DAYS,
) -> str:
    """WF1: Daily artifact digest workflow.

    Args:
        symbols: Tickers to summarize. Empty = every symbol in the store.
        run_date: Last day of the ranking window (YYYY-MM-DD). Empty = today.
        window_days: Rolling window for the strongest-signal search (default: 7).

    Returns:
        Digest report as markdown string.
    """
    # Step 0: Resolve empty run_date to today (UTC)
    resolved_date = resolve_run_date(run_date=run_date)

    # Step 1: Requested symbols, or discover them from the store
    selected = select_symbols(symbols=symbols)

    # Step 2: PARALLEL: latest bundle, window ranking, spread reports
    snapshots = load_latest_snapshots(symbols=selected)
    window_signals = compute_window_strongest(
        symbols=selected,
        run_date=resolved_date,
        window_days=window_days,
    )
    spread_summaries = load_spread_summaries(symbols=selected)

    # Step 3: Render markdown digest
    return generate_digest_report(
        run_date=resolved_date,
        symbols=selected,
        snapshots=snapshots,
        window_signals=window_signals,
        spread_summaries=spread_summaries,
        window_days=window_days,
    )
