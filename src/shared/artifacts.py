"""Artifact index: filename classification and symbol discovery.

Kind and symbol are inferred from the object's filename alone. The
directory an object lives in only contributes its partition label.

    daily/2026-02-08/signals_AAPL_20260208_063000.json       -> SIGNALS, AAPL
    daily/2026-02-08/aapl_gemini_analysis_20260208.json      -> ANALYSIS, AAPL
    spreads-yo/AAPL_spread_analysis_20260208_070000.md       -> SPREAD_REPORT, AAPL
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from src.shared.config import (
    DAILY_PREFIX,
    SPREADS_PREFIX,
    SIGNALS_MARKER,
    ANALYSIS_MARKER,
    SPREAD_REPORT_MARKER,
    STRUCTURED_SUFFIX,
    REPORT_SUFFIX,
)
from src.shared.errors import ArtifactStoreError
from src.shared.models import ArtifactKind, ArtifactRef

logger = logging.getLogger(__name__)

_SIGNALS_RE = re.compile(re.escape(SIGNALS_MARKER) + r"([A-Z]+)_", re.IGNORECASE)
_ANALYSIS_RE = re.compile(r"([A-Z]+)" + re.escape(ANALYSIS_MARKER), re.IGNORECASE)
_SPREAD_REPORT_RE = re.compile(r"^([A-Z]+)" + re.escape(SPREAD_REPORT_MARKER), re.IGNORECASE)

_PARTITION_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Symbol kinds that make a ticker "available" in the daily layout
INDEXED_KINDS = (ArtifactKind.SIGNALS, ArtifactKind.ANALYSIS)


def partition_of(key: str, prefix: Optional[str] = None) -> str:
    """Return the YYYY-MM-DD partition a key lives in, or "" if none.

    Args:
        key: Full object key, e.g. "daily/2026-02-08/signals_AAPL_x.json".
        prefix: Root of the daily layout (default: from config).
    """
    root = prefix if prefix is not None else DAILY_PREFIX
    if not key.startswith(root):
        return ""
    rest = key[len(root):]
    if "/" not in rest:
        return ""
    segment = rest.split("/", 1)[0]
    return segment if _PARTITION_RE.match(segment) else ""


def classify_key(
    key: str,
    prefix: Optional[str] = None,
    require_suffix: bool = True,
) -> Optional[ArtifactRef]:
    """Classify an object key into exactly one artifact kind and symbol.

    The analysis pattern is checked before the signals pattern since it
    is the more specific of the two. Structured kinds must be .json,
    spread reports must be .md, unless require_suffix is False (symbol
    discovery goes by the filename patterns alone).

    Returns:
        ArtifactRef, or None when the filename matches no known pattern.
    """
    filename = key.rsplit("/", 1)[-1]
    lowered = filename.lower()
    partition = partition_of(key, prefix)

    if not require_suffix or lowered.endswith(STRUCTURED_SUFFIX):
        match = _ANALYSIS_RE.search(filename)
        if match:
            return ArtifactRef(key, ArtifactKind.ANALYSIS, match.group(1).upper(), partition)
        match = _SIGNALS_RE.search(filename)
        if match:
            return ArtifactRef(key, ArtifactKind.SIGNALS, match.group(1).upper(), partition)

    if not require_suffix or lowered.endswith(REPORT_SUFFIX):
        match = _SPREAD_REPORT_RE.search(filename)
        if match:
            return ArtifactRef(key, ArtifactKind.SPREAD_REPORT, match.group(1).upper(), partition)

    return None


def classify_keys(
    keys: Iterable[str],
    prefix: Optional[str] = None,
    require_suffix: bool = True,
) -> List[ArtifactRef]:
    refs = []
    for key in keys:
        ref = classify_key(key, prefix, require_suffix)
        if ref is not None:
            refs.append(ref)
    return refs


def group_by_partition(refs: Iterable[ArtifactRef]) -> Dict[str, List[ArtifactRef]]:
    """Group classified refs by partition label, dropping unpartitioned ones."""
    grouped = defaultdict(list)
    for ref in refs:
        if ref.partition:
            grouped[ref.partition].append(ref)
    return dict(grouped)


def list_symbols(bucket: Optional[str] = None, client=None) -> List[str]:
    """List every symbol with a signals or gemini-analysis artifact.

    One flattened listing of the daily prefix. Symbols come from the
    filename patterns alone, whatever the file extension. An empty or
    unreadable store yields an empty list: absence of data is not an
    error here.

    Returns:
        Sorted, de-duplicated, upper-case symbols.
    """
    from src.shared.storage import list_keys

    try:
        keys = list_keys(DAILY_PREFIX, bucket=bucket, client=client)
    except ArtifactStoreError as e:
        logger.warning("Symbol listing unavailable, returning no symbols: %s", e)
        return []

    symbols = {
        ref.symbol
        for ref in classify_keys(keys, require_suffix=False)
        if ref.kind in INDEXED_KINDS
    }
    logger.info("Found %d symbols across %d keys", len(symbols), len(keys))
    return sorted(symbols)


def list_report_symbols(bucket: Optional[str] = None, client=None) -> List[str]:
    """List every symbol with at least one spread report.

    Reports organized in per-ticker folders (spreads-yo/AAPL/...) are
    listed by folder name. Without folders, the flat spread-report
    listing is scanned by filename. Same never-raises contract as
    list_symbols.
    """
    from src.shared.storage import get_s3_client, list_common_prefixes, list_keys

    try:
        client = client or get_s3_client()
        folders = list_common_prefixes(SPREADS_PREFIX, bucket=bucket, client=client)
        if folders:
            symbols = {
                folder[len(SPREADS_PREFIX):].strip("/").upper()
                for folder in folders
            }
            return sorted(s for s in symbols if s)
        keys = list_keys(SPREADS_PREFIX, bucket=bucket, client=client)
    except ArtifactStoreError as e:
        logger.warning("Report listing unavailable, returning no symbols: %s", e)
        return []

    symbols = {
        ref.symbol
        for ref in classify_keys(keys)
        if ref.kind == ArtifactKind.SPREAD_REPORT
    }
    return sorted(symbols)
