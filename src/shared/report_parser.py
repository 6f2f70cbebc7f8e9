"""Spread report parser.

Turns the markdown spread report written by the options analysis job into
a SpreadReport. Expected layout (every section optional):

    # AI-Enhanced Options Analysis: AAPL
    **Date:** 2026-02-08
    **Reference Price:** $231.45
    - **RSI:** 58.2
    - **Trend:** Bullish above 50-day SMA
    ---
    ### Put Credit Spread (2026-02-20)
    **Strategy:** Sell 220P / Buy 215P
    **Est. Credit:** $1.35 | **Max Risk:** $3.65
    **Analysis:**
    Support at 222 held twice this week.
    Implied volatility is elevated.
    ---

One forward pass drives a two-state machine:

    state          line kind         -> state          action
    -----          ---------            -----          ------
    any            SPREAD_HEADER     -> IDLE           flush open record, open new
    IDLE           ANALYSIS_HEADER   -> IN_RATIONALE   (needs an open record)
    IN_RATIONALE   SECTION_BREAK     -> IDLE           record stays open
    IN_RATIONALE   text-like line    -> IN_RATIONALE   append to rationale

Header, indicator, strategy and credit lines apply in either state.
A record closes only at the next spread header or at end of input.
The parser never raises; missing fields stay "".
"""

import re
from enum import Enum
from typing import Dict, List, Optional, Tuple

from src.shared.models import SpreadRecord, SpreadReport, parse_indicator_value


class ParserState(Enum):
    IDLE = "idle"
    IN_RATIONALE = "in-rationale"


class LineKind(Enum):
    BLANK = "blank"
    TITLE = "title"
    DATE = "date"
    REFERENCE_PRICE = "reference-price"
    INDICATOR = "indicator"
    SPREAD_HEADER = "spread-header"
    STRATEGY = "strategy"
    CREDIT_RISK = "credit-risk"
    ANALYSIS_HEADER = "analysis-header"
    SECTION_BREAK = "section-break"
    BOLD_HEADER = "bold-header"
    TEXT = "text"


_TITLE_RE = re.compile(r"Analysis: (\w+)")
_DATE_RE = re.compile(r"Date:\*\* (.*)")
_PRICE_RE = re.compile(r"\$([0-9.]+)")
_INDICATOR_RE = re.compile(r"- \*\*([^:]+):\*\* (.*)")
_SPREAD_TYPE_RE = re.compile(r"(Put|Call) Credit Spread")
_EXPIRATION_RE = re.compile(r"\((.*?)\)")
_STRATEGY_RE = re.compile(r"Strategy:\*\* (.*)")
_CREDIT_RISK_RE = re.compile(r"Credit:\*\* \$([\d.]+).*Risk:\*\* \$([\d.]+)")

# Line kinds whose text joins an open rationale
RATIONALE_KINDS = frozenset({LineKind.TEXT, LineKind.INDICATOR, LineKind.TITLE})

TRANSITIONS: Dict[Tuple[ParserState, LineKind], ParserState] = {
    (ParserState.IDLE, LineKind.SPREAD_HEADER): ParserState.IDLE,
    (ParserState.IN_RATIONALE, LineKind.SPREAD_HEADER): ParserState.IDLE,
    (ParserState.IDLE, LineKind.ANALYSIS_HEADER): ParserState.IN_RATIONALE,
    (ParserState.IN_RATIONALE, LineKind.ANALYSIS_HEADER): ParserState.IN_RATIONALE,
    (ParserState.IN_RATIONALE, LineKind.SECTION_BREAK): ParserState.IDLE,
}


def classify_line(line: str) -> LineKind:
    """Classify one report line. Spread headers win over ### headings."""
    if not line.strip():
        return LineKind.BLANK
    if "Credit Spread" in line and "(" in line:
        return LineKind.SPREAD_HEADER
    if line.startswith("###") or line.startswith("---"):
        return LineKind.SECTION_BREAK
    if line.startswith("# ") and _TITLE_RE.search(line):
        return LineKind.TITLE
    if line.startswith("**Date:**"):
        return LineKind.DATE
    if line.startswith("**Reference Price:**"):
        return LineKind.REFERENCE_PRICE
    if line.startswith("**Strategy:**"):
        return LineKind.STRATEGY
    if line.startswith("**Est. Credit:**"):
        return LineKind.CREDIT_RISK
    if line.startswith("**Analysis:**"):
        return LineKind.ANALYSIS_HEADER
    if line.startswith("**"):
        return LineKind.BOLD_HEADER
    if line.startswith("- **") and "Spread" not in line and _INDICATOR_RE.match(line):
        return LineKind.INDICATOR
    return LineKind.TEXT


def next_state(state: ParserState, kind: LineKind, has_open_record: bool) -> ParserState:
    """Apply the transition table. Rationale needs an open record."""
    if kind == LineKind.ANALYSIS_HEADER and not has_open_record:
        return state
    return TRANSITIONS.get((state, kind), state)


class ReportParser:
    """Incremental spread report parser: feed() lines, then finish()."""

    def __init__(self):
        self.state = ParserState.IDLE
        self.report = SpreadReport()
        self.current: Optional[SpreadRecord] = None

    def feed(self, line: str) -> None:
        kind = classify_line(line)
        self._apply(kind, line)
        self.state = next_state(self.state, kind, self.current is not None)

    def finish(self) -> SpreadReport:
        self._flush()
        self.state = ParserState.IDLE
        return self.report

    def _flush(self) -> None:
        if self.current is not None:
            self.report.spreads.append(self.current)
            self.current = None

    def _apply(self, kind: LineKind, line: str) -> None:
        if kind == LineKind.TITLE:
            self.report.ticker = _TITLE_RE.search(line).group(1)
        elif kind == LineKind.DATE:
            match = _DATE_RE.search(line)
            if match:
                self.report.date = match.group(1).strip()
        elif kind == LineKind.REFERENCE_PRICE:
            match = _PRICE_RE.search(line)
            if match:
                try:
                    self.report.reference_price = float(match.group(1))
                except ValueError:
                    pass  # e.g. "$1.2.3": leave unset
        elif kind == LineKind.INDICATOR:
            match = _INDICATOR_RE.match(line)
            self.report.indicators[match.group(1)] = parse_indicator_value(match.group(2))
        elif kind == LineKind.SPREAD_HEADER:
            self._open_record(line)
        elif kind == LineKind.STRATEGY and self.current is not None:
            match = _STRATEGY_RE.search(line)
            if match:
                self.current.strategy = match.group(1).strip()
        elif kind == LineKind.CREDIT_RISK and self.current is not None:
            match = _CREDIT_RISK_RE.search(line)
            if match:
                self.current.credit = match.group(1)
                self.current.max_risk = match.group(2)

        if (
            self.state == ParserState.IN_RATIONALE
            and self.current is not None
            and kind in RATIONALE_KINDS
        ):
            self._append_rationale(line)

    def _open_record(self, line: str) -> None:
        self._flush()
        type_match = _SPREAD_TYPE_RE.search(line)
        exp_match = _EXPIRATION_RE.search(line)
        self.current = SpreadRecord(
            type=f"{type_match.group(1)} Credit Spread" if type_match else "Credit Spread",
            expiration=exp_match.group(1) if exp_match else "",
        )

    def _append_rationale(self, line: str) -> None:
        text = line.strip()
        if self.current.rationale:
            self.current.rationale = f"{self.current.rationale} {text}"
        else:
            self.current.rationale = text


def parse_report(text: str) -> Optional[SpreadReport]:
    """Parse a spread report.

    Returns:
        SpreadReport, or None when the report yields no spread records
        (no data, not an error).
    """
    parser = ReportParser()
    for line in (text or "").splitlines():
        parser.feed(line)
    report = parser.finish()
    return report if report.spreads else None


def parse_spreads(text: str) -> List[SpreadRecord]:
    """Spread records of a report in document order ([] when none)."""
    report = parse_report(text)
    return report.spreads if report is not None else []
