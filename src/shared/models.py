"""Shared data models for Signal Artifact Workflows.

All models are plain Python dataclasses. They are read-only projections
of objects in the artifact store, computed on demand.

IMPORTANT (Flytekit constraint):
    Never pass dataclasses with Dict/List fields between Flyte tasks:
    causes Promise binding errors. WF1 tasks exchange Dict[str, str]
    with JSON serialization and build these models inside the task.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Union

from src.shared.config import STRENGTH_VOCABULARY


# ============================================================
# Artifacts
# ============================================================

class ArtifactKind(str, Enum):
    """Artifact kind, inferred from the filename only."""
    SIGNALS = "signals"
    ANALYSIS = "gemini-analysis"
    SPREAD_REPORT = "spread-report"


@dataclass(frozen=True)
class ArtifactRef:
    """One classified object key in the store."""
    key: str                           # Full object key
    kind: ArtifactKind
    symbol: str                        # Upper-case ticker from the filename
    partition: str = ""                # YYYY-MM-DD, "" outside the daily layout

    @property
    def filename(self) -> str:
        return self.key.rsplit("/", 1)[-1]


# ============================================================
# Indicator values (number or original text)
# ============================================================

@dataclass(frozen=True)
class NumberValue:
    """Indicator that parsed as a number."""
    value: float


@dataclass(frozen=True)
class TextValue:
    """Indicator kept as its original text."""
    text: str


IndicatorValue = Union[NumberValue, TextValue]
IndicatorMap = Dict[str, IndicatorValue]

# Whole-string decimal only: "45.2%" or "12 (rising)" stay text
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_indicator_value(raw: str) -> IndicatorValue:
    """Parse indicator text to a number, keeping the original text on failure."""
    stripped = raw.strip()
    if _NUMBER_RE.match(stripped):
        return NumberValue(float(stripped))
    return TextValue(raw)


def indicator_from_json(value: Any) -> IndicatorValue:
    """Convert a decoded JSON value; non-numbers keep their text form."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return NumberValue(float(value))
    if isinstance(value, str):
        return TextValue(value)
    return TextValue(json.dumps(value))


def indicator_to_json(value: IndicatorValue) -> Union[float, str]:
    if isinstance(value, NumberValue):
        return value.value
    return value.text


# ============================================================
# Signals & Analysis
# ============================================================

class SignalStrength(IntEnum):
    """Ordered strength vocabulary. Lower value = stronger signal.

    UNKNOWN covers every label whose leading token is not in the
    vocabulary and always ranks strictly weakest.
    """
    EXTREME = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3
    UNKNOWN = 4

    @classmethod
    def from_label(cls, label: str) -> "SignalStrength":
        """Rank a free-text label by its first whitespace-delimited token.

        "HIGH RISK" -> HIGH, "extreme" -> EXTREME, "CAUTION" -> UNKNOWN.
        """
        tokens = (label or "").split()
        if not tokens:
            return cls.UNKNOWN
        token = tokens[0].upper()
        if token in STRENGTH_VOCABULARY:
            return cls[token]
        return cls.UNKNOWN


@dataclass
class Signal:
    """A categorical technical observation from an analysis artifact."""
    name: str                          # e.g. "RSI OVERSOLD"
    description: str
    strength: str                      # Free text, e.g. "EXTREME RISK"
    category: str                      # e.g. "MOMENTUM"
    ai_score: Optional[float] = None   # Present on AI-ranked signals only

    @property
    def rank(self) -> SignalStrength:
        return SignalStrength.from_label(self.strength)


@dataclass
class AnalysisRecord:
    """Decoded signals or gemini-analysis artifact for one symbol.

    Both artifact kinds share this shape. The signals artifact carries
    price/indicator data, the analysis artifact carries commentary.
    """
    symbol: str
    timestamp: str
    date: str                                   # YYYY-MM-DD
    signals: List[Signal] = field(default_factory=list)
    # Market data
    price: Optional[float] = None
    change_pct: Optional[float] = None
    volume: Optional[float] = None
    indicators: IndicatorMap = field(default_factory=dict)
    moving_averages: IndicatorMap = field(default_factory=dict)
    # Commentary
    overall_bias: str = ""
    recommendation: str = ""
    analysis: str = ""
    long_term_comment: str = ""
    risk: List[str] = field(default_factory=list)
    key_levels: List[str] = field(default_factory=list)
    # Counts as reported by the producer
    signal_count: int = 0
    bullish_count: int = 0
    bearish_count: int = 0
    # Provenance
    source_key: str = ""


@dataclass
class ArtifactBundle:
    """Resolution result for one symbol. All artifacts share one partition."""
    symbol: str
    partition: str                              # YYYY-MM-DD
    signals: Optional[AnalysisRecord] = None
    analysis: Optional[AnalysisRecord] = None

    @property
    def primary(self) -> Optional[AnalysisRecord]:
        """Analysis artifact when present, otherwise the signals artifact."""
        return self.analysis if self.analysis is not None else self.signals

    @property
    def kinds(self) -> List[ArtifactKind]:
        present = []
        if self.signals is not None:
            present.append(ArtifactKind.SIGNALS)
        if self.analysis is not None:
            present.append(ArtifactKind.ANALYSIS)
        return present


@dataclass
class WindowSignal:
    """Strongest signal over a rolling window and the date it came from."""
    signal: Signal
    date: str                                   # YYYY-MM-DD


# ============================================================
# Spread Reports
# ============================================================

@dataclass
class SpreadRecord:
    """One options strategy extracted from a spread report.

    All fields default to "" when the report omits them. credit and
    max_risk keep the dollar figure as written (without "$").
    """
    type: str = ""                     # "Put Credit Spread", "Call Credit Spread"
    expiration: str = ""               # Parenthesized text from the header
    strategy: str = ""
    credit: str = ""
    max_risk: str = ""
    rationale: str = ""


@dataclass
class SpreadReport:
    """Parsed spread analysis report for one ticker."""
    ticker: str = ""                   # From the title, informational only
    date: str = ""
    reference_price: Optional[float] = None
    indicators: IndicatorMap = field(default_factory=dict)
    spreads: List[SpreadRecord] = field(default_factory=list)
