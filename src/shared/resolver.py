"""Latest-artifact resolver.

Finds the newest daily partition that holds a signals or gemini-analysis
artifact for a symbol and loads what that partition holds.

Selection rules:
    - Partitions are walked newest -> oldest (lexical order of YYYY-MM-DD).
    - The FIRST partition with at least one matching kind wins. Only the
      kinds present in that same partition are loaded; a kind missing there
      is NOT backfilled from an older partition.
    - Several runs of the same kind in one partition: the lexicographically
      greatest filename (latest timestamp suffix) wins.

Listing modes (RESOLVER_LISTING_MODE):
    flat           one listing of the daily prefix, grouped in memory
    per_partition  list partition folders, then list each one lazily

Both modes sort partition labels before deciding, so the result never
depends on listing arrival order. A listing or download failure mid-scan
aborts the resolution with ArtifactStoreError.
"""

import json
import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from src.shared.artifacts import classify_keys, group_by_partition, partition_of
from src.shared.config import DAILY_PREFIX, SPREADS_PREFIX, RESOLVER_LISTING_MODE
from src.shared.errors import ArtifactNotFoundError, MalformedArtifactError
from src.shared.models import (
    AnalysisRecord,
    ArtifactBundle,
    ArtifactKind,
    ArtifactRef,
    Signal,
    SpreadReport,
    indicator_from_json,
)

logger = logging.getLogger(__name__)

LISTING_MODES = ("flat", "per_partition")


# ============================================================
# Decoding
# ============================================================

def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_float(value: Any) -> Optional[float]:
    """Numbers and numeric strings become floats, anything else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _count(payload: Dict[str, Any], field: str, key: str, default: int = 0) -> int:
    number = _optional_float(payload.get(field))
    if number is None:
        return default
    if not math.isfinite(number):
        raise MalformedArtifactError(key, f"'{field}' must be a finite number")
    return int(number)


def _text_list(payload: Dict[str, Any], field: str, key: str) -> List[str]:
    value = payload.get(field)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [_text(item) for item in value]
    raise MalformedArtifactError(key, f"'{field}' must be a list of strings")


def _indicator_map(payload: Dict[str, Any], field: str, key: str) -> dict:
    value = payload.get(field)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedArtifactError(key, f"'{field}' must be an object")
    return {str(name): indicator_from_json(raw) for name, raw in value.items()}


def _decode_signal(entry: Any, key: str, index: int) -> Signal:
    if not isinstance(entry, dict):
        raise MalformedArtifactError(key, f"signal #{index} is not an object")
    return Signal(
        name=_text(entry.get("signal", entry.get("name"))),
        description=_text(entry.get("desc", entry.get("description"))),
        strength=_text(entry.get("strength")),
        category=_text(entry.get("category")),
        ai_score=_optional_float(entry.get("ai_score")),
    )


def decode_analysis(
    text: str,
    source_key: str = "",
    fallback_symbol: str = "",
) -> AnalysisRecord:
    """Decode a signals or gemini-analysis JSON document.

    The analysis artifact lists its signals under "signals_analyzed",
    the signals artifact under "signals"; both are accepted.

    Args:
        text: Raw JSON text.
        source_key: Object key, for error messages and provenance.
        fallback_symbol: Symbol from the filename, used when the
            document carries none.

    Returns:
        AnalysisRecord with every field present in the document.

    Raises:
        MalformedArtifactError: Invalid JSON, a non-object document,
            structurally wrong signal / indicator fields, or a
            non-finite count.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedArtifactError(source_key, f"invalid JSON ({e.msg})") from e

    if not isinstance(payload, dict):
        raise MalformedArtifactError(source_key, "expected a JSON object")

    raw_signals = payload.get("signals_analyzed")
    if raw_signals is None:
        raw_signals = payload.get("signals")
    if raw_signals is None:
        raw_signals = []
    if not isinstance(raw_signals, list):
        raise MalformedArtifactError(source_key, "signals must be a list")

    signals = [_decode_signal(entry, source_key, i) for i, entry in enumerate(raw_signals)]

    return AnalysisRecord(
        symbol=_text(payload.get("symbol") or fallback_symbol).upper(),
        timestamp=_text(payload.get("timestamp")),
        date=_text(payload.get("date")),
        signals=signals,
        price=_optional_float(payload.get("price")),
        change_pct=_optional_float(payload.get("change_pct")),
        volume=_optional_float(payload.get("volume")),
        indicators=_indicator_map(payload, "indicators", source_key),
        moving_averages=_indicator_map(payload, "moving_averages", source_key),
        overall_bias=_text(payload.get("overall_bias")),
        recommendation=_text(payload.get("recommendation")),
        analysis=_text(payload.get("analysis")),
        long_term_comment=_text(payload.get("long_term_comment")),
        risk=_text_list(payload, "risk", source_key),
        key_levels=_text_list(payload, "key_levels", source_key),
        signal_count=_count(payload, "signal_count", source_key, default=len(signals)),
        bullish_count=_count(payload, "bullish_count", source_key),
        bearish_count=_count(payload, "bearish_count", source_key),
        source_key=source_key,
    )


def load_record(ref: ArtifactRef, bucket: Optional[str] = None, client=None) -> AnalysisRecord:
    """Download and decode one structured artifact."""
    from src.shared.storage import read_object_text

    try:
        text = read_object_text(ref.key, bucket=bucket, client=client)
    except UnicodeDecodeError as e:
        raise MalformedArtifactError(ref.key, "not valid UTF-8") from e
    return decode_analysis(text, source_key=ref.key, fallback_symbol=ref.symbol)


# ============================================================
# Selection
# ============================================================

def select_candidates(
    refs: Iterable[ArtifactRef],
    symbol: str,
    kinds: Tuple[ArtifactKind, ...] = (ArtifactKind.SIGNALS, ArtifactKind.ANALYSIS),
) -> Dict[ArtifactKind, ArtifactRef]:
    """Pick, per kind, the matching ref with the greatest filename.

    Args:
        refs: Classified refs of ONE partition.
        symbol: Symbol to match (case-insensitive).
        kinds: Kinds to consider.

    Returns:
        Mapping kind -> chosen ref; empty when nothing matches.
    """
    symbol = symbol.upper()
    chosen: Dict[ArtifactKind, ArtifactRef] = {}
    for ref in refs:
        if ref.symbol != symbol or ref.kind not in kinds:
            continue
        current = chosen.get(ref.kind)
        if current is None or ref.filename > current.filename:
            chosen[ref.kind] = ref
    return chosen


def iter_partitions_newest_first(
    bucket: Optional[str] = None,
    client=None,
    listing: Optional[str] = None,
) -> Iterator[Tuple[str, List[ArtifactRef]]]:
    """Yield (partition, refs) from the newest partition to the oldest.

    Lazy: in per_partition mode a partition is only listed once the
    caller asks for it, so stopping early saves the remaining listings.
    """
    from src.shared.storage import build_partition_prefix, list_common_prefixes, list_keys

    mode = listing or RESOLVER_LISTING_MODE
    if mode not in LISTING_MODES:
        raise ValueError(f"Unknown listing mode '{mode}', expected one of {LISTING_MODES}")

    if mode == "flat":
        keys = list_keys(DAILY_PREFIX, bucket=bucket, client=client)
        grouped = group_by_partition(classify_keys(keys))
        for partition in sorted(grouped, reverse=True):
            yield partition, grouped[partition]
        return

    prefixes = list_common_prefixes(DAILY_PREFIX, bucket=bucket, client=client)
    partitions = sorted({partition_of(p) for p in prefixes} - {""}, reverse=True)
    for partition in partitions:
        keys = list_keys(build_partition_prefix(partition), bucket=bucket, client=client)
        yield partition, classify_keys(keys)


# ============================================================
# Resolution
# ============================================================

def _load_bundle(
    symbol: str,
    partition: str,
    candidates: Dict[ArtifactKind, ArtifactRef],
    bucket: Optional[str],
    client,
) -> ArtifactBundle:
    bundle = ArtifactBundle(symbol=symbol, partition=partition)
    if ArtifactKind.SIGNALS in candidates:
        bundle.signals = load_record(candidates[ArtifactKind.SIGNALS], bucket=bucket, client=client)
    if ArtifactKind.ANALYSIS in candidates:
        bundle.analysis = load_record(candidates[ArtifactKind.ANALYSIS], bucket=bucket, client=client)

    logger.info(
        "Resolved %s to partition %s (%s)",
        symbol, partition, ", ".join(k.value for k in bundle.kinds),
    )
    return bundle


def resolve_latest(
    symbol: str,
    bucket: Optional[str] = None,
    client=None,
    listing: Optional[str] = None,
) -> ArtifactBundle:
    """Resolve the newest artifact bundle for a symbol.

    Args:
        symbol: Ticker symbol (case-insensitive).
        bucket: S3 bucket name. Default: from config.
        client: boto3 S3 client. Default: get_s3_client().
        listing: "flat" or "per_partition". Default: from config.

    Returns:
        ArtifactBundle of the first partition (newest first) holding a
        signals or gemini-analysis artifact for the symbol.

    Raises:
        ArtifactNotFoundError: No partition holds a matching artifact.
        MalformedArtifactError: A chosen artifact fails to decode.
        ArtifactStoreError: Listing or download failed.
    """
    from src.shared.storage import get_s3_client

    symbol = symbol.strip().upper()
    client = client or get_s3_client()

    for partition, refs in iter_partitions_newest_first(bucket=bucket, client=client, listing=listing):
        candidates = select_candidates(refs, symbol)
        if not candidates:
            logger.debug("No %s artifacts in partition %s", symbol, partition)
            continue
        return _load_bundle(symbol, partition, candidates, bucket, client)

    raise ArtifactNotFoundError(symbol, f"searched every partition under {DAILY_PREFIX}")


def resolve_for_date(
    symbol: str,
    date: str,
    bucket: Optional[str] = None,
    client=None,
) -> ArtifactBundle:
    """Load the artifacts of one specific partition for a symbol.

    Raises:
        ArtifactNotFoundError: The partition holds no matching artifact.
        ValueError: date is not YYYY-MM-DD.
    """
    from src.shared.storage import build_partition_prefix, get_s3_client, list_keys

    symbol = symbol.strip().upper()
    prefix = build_partition_prefix(date)
    client = client or get_s3_client()

    refs = classify_keys(list_keys(prefix, bucket=bucket, client=client))
    candidates = select_candidates(refs, symbol)
    if not candidates:
        raise ArtifactNotFoundError(symbol, f"partition {date}")
    return _load_bundle(symbol, date, candidates, bucket, client)


def resolve_latest_report(
    symbol: str,
    bucket: Optional[str] = None,
    client=None,
) -> Optional[SpreadReport]:
    """Load and parse the newest spread report for a symbol.

    Returns:
        SpreadReport, or None when the newest report holds no spreads.

    Raises:
        ArtifactNotFoundError: No spread report exists for the symbol.
    """
    from src.shared.report_parser import parse_report
    from src.shared.storage import get_s3_client, list_keys, read_object_text

    symbol = symbol.strip().upper()
    client = client or get_s3_client()

    refs = classify_keys(list_keys(SPREADS_PREFIX, bucket=bucket, client=client))
    candidates = select_candidates(refs, symbol, kinds=(ArtifactKind.SPREAD_REPORT,))
    if not candidates:
        raise ArtifactNotFoundError(symbol, f"no spread report under {SPREADS_PREFIX}")

    ref = candidates[ArtifactKind.SPREAD_REPORT]
    try:
        text = read_object_text(ref.key, bucket=bucket, client=client)
    except UnicodeDecodeError as e:
        raise MalformedArtifactError(ref.key, "not valid UTF-8") from e

    report = parse_report(text)
    if report is None:
        logger.info("Spread report %s contains no spreads", ref.key)
    return report
