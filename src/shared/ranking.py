"""Signal strength ranking.

Strength labels are ranked by their first token against the fixed
vocabulary EXTREME > HIGH > MEDIUM > LOW; anything else ranks last
(see SignalStrength). Ties always go to the first occurrence.

The rolling-window result is a nested reduction: every day first picks
its own champion, then the champions compete. A day's runner-up never
reaches the outer comparison, even when it beats another day's champion.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from src.shared.config import DAILY_PREFIX, SIGNAL_WINDOW_DAYS
from src.shared.models import ArtifactKind, Signal, WindowSignal

logger = logging.getLogger(__name__)


def is_stronger(candidate: Signal, incumbent: Signal) -> bool:
    """True when candidate ranks strictly stronger than incumbent."""
    return candidate.rank < incumbent.rank


def strongest_of_day(signals: Iterable[Signal]) -> Optional[Signal]:
    """Return the strongest signal, or None for no signals.

    Left-to-right scan; an equally ranked later signal never replaces
    an earlier one.
    """
    strongest = None
    for signal in signals:
        if strongest is None or is_stronger(signal, strongest):
            strongest = signal
    return strongest


def strongest_across_days(
    days: Iterable[Tuple[str, List[Signal]]],
) -> Optional[WindowSignal]:
    """Reduce (date, signals) pairs to the strongest daily champion.

    Args:
        days: Pairs in comparison order. Ties go to the earlier pair.

    Returns:
        WindowSignal with the winning champion and its date, or None
        when no day has any signal.
    """
    best = None
    for date, signals in days:
        champion = strongest_of_day(signals)
        if champion is None:
            continue
        if best is None or is_stronger(champion, best.signal):
            best = WindowSignal(signal=champion, date=date)
    return best


def window_dates(days: int = SIGNAL_WINDOW_DAYS, end_date: Optional[str] = None) -> List[str]:
    """Calendar dates of the window, newest first.

    Args:
        days: Window length in calendar days (default: 7).
        end_date: Last day of the window (YYYY-MM-DD). Empty = today (UTC).

    Returns:
        e.g. ["2026-02-08", "2026-02-07", ..., "2026-02-02"] for 7 days,
        whether or not those dates have data.
    """
    if days < 1:
        raise ValueError(f"Window must span at least one day, got {days}")

    if end_date:
        end = datetime.strptime(end_date, "%Y-%m-%d").date()
    else:
        end = datetime.now(timezone.utc).date()

    return [(end - timedelta(days=i)).strftime("%Y-%m-%d") for i in range(days)]


def strongest_over_window(
    symbol: str,
    days: int = SIGNAL_WINDOW_DAYS,
    end_date: Optional[str] = None,
    bucket: Optional[str] = None,
    client=None,
) -> Optional[WindowSignal]:
    """Strongest gemini-analysis signal for a symbol over the last N days.

    One flattened listing of the daily prefix, then one download per
    window date that holds an analysis artifact for the symbol (greatest
    filename in that partition). Dates are compared newest first, so an
    equally strong champion from a more recent day wins.

    Returns:
        WindowSignal, or None when no day in the window has a signal.

    Raises:
        MalformedArtifactError: An analysis artifact in the window fails
            to decode.
        ArtifactStoreError: Listing or download failed.
    """
    from src.shared.artifacts import classify_keys, group_by_partition
    from src.shared.resolver import load_record, select_candidates
    from src.shared.storage import get_s3_client, list_keys

    symbol = symbol.strip().upper()
    dates = window_dates(days, end_date)
    client = client or get_s3_client()

    grouped = group_by_partition(classify_keys(list_keys(DAILY_PREFIX, bucket=bucket, client=client)))

    day_signals = []
    for date in dates:
        candidates = select_candidates(
            grouped.get(date, []), symbol, kinds=(ArtifactKind.ANALYSIS,)
        )
        if not candidates:
            continue
        record = load_record(candidates[ArtifactKind.ANALYSIS], bucket=bucket, client=client)
        day_signals.append((date, record.signals))

    result = strongest_across_days(day_signals)
    logger.info(
        "%s: %d of %d window days with analysis, strongest=%s",
        symbol, len(day_signals), len(dates),
        result.signal.strength if result else "none",
    )
    return result
