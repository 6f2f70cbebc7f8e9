"""Shared test fixtures for Signal Artifact Workflows.

Provides an in-memory stand-in for the boto3 S3 client (only the calls
the storage helpers make) plus sample artifact documents and spread
reports, so no test needs network or MinIO access.
"""

import io
import json

import pytest
from botocore.exceptions import ClientError


class FakeS3Client:
    """Minimal boto3 S3 client double backed by a dict of key -> bytes.

    Supports get_paginator("list_objects_v2") (with Prefix, Delimiter and
    pagination) and get_object. Records every listing prefix and every
    downloaded key so tests can assert short-circuit behavior.
    """

    def __init__(self, objects=None, page_size=1000, failing_prefixes=()):
        self.objects = {}
        for key, body in (objects or {}).items():
            self.put(key, body)
        self.page_size = page_size
        self.failing_prefixes = set(failing_prefixes)
        self.listed_prefixes = []
        self.downloaded_keys = []

    def put(self, key, body):
        self.objects[key] = body.encode("utf-8") if isinstance(body, str) else body

    def get_paginator(self, operation_name):
        assert operation_name == "list_objects_v2"
        return _FakePaginator(self)

    def get_object(self, Bucket, Key):
        self.downloaded_keys.append(Key)
        if Key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            )
        return {"Body": io.BytesIO(self.objects[Key])}


class _FakePaginator:
    def __init__(self, client):
        self.client = client

    def paginate(self, Bucket, Prefix="", Delimiter=None):
        self.client.listed_prefixes.append(Prefix)
        if Prefix in self.client.failing_prefixes:
            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
                "ListObjectsV2",
            )

        keys = sorted(k for k in self.client.objects if k.startswith(Prefix))
        contents, prefixes = [], []
        for key in keys:
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                common = Prefix + rest.split(Delimiter, 1)[0] + Delimiter
                if common not in prefixes:
                    prefixes.append(common)
            else:
                contents.append({"Key": key})

        size = self.client.page_size
        pages = []
        for start in range(0, max(len(contents), 1), size):
            page = {"KeyCount": len(contents[start:start + size])}
            if contents[start:start + size]:
                page["Contents"] = contents[start:start + size]
            pages.append(page)
        if prefixes:
            pages[0]["CommonPrefixes"] = [{"Prefix": p} for p in prefixes]
        return iter(pages)


@pytest.fixture
def fake_s3():
    """Factory: fake_s3({key: body}, page_size=..., failing_prefixes=...)."""
    def _make(objects=None, **kwargs):
        return FakeS3Client(objects, **kwargs)
    return _make


# ============================================================
# Artifact documents
# ============================================================

def make_signal(strength, name="SIGNAL", category="MOMENTUM", desc=""):
    return {"signal": name, "desc": desc or f"{name} description", "strength": strength, "category": category}


def analysis_doc(symbol, date, strengths, **extra):
    """Gemini-analysis JSON (signals under "signals_analyzed")."""
    doc = {
        "symbol": symbol,
        "timestamp": f"{date}T06:45:00Z",
        "date": date,
        "analysis": f"{symbol} consolidating near highs.",
        "signal_count": len(strengths),
        "signals_analyzed": [
            make_signal(s, name=f"{symbol}_SIG_{i}") for i, s in enumerate(strengths)
        ],
        "overall_bias": "BULLISH",
        "recommendation": "HOLD",
        "risk": ["Earnings next week"],
        "key_levels": ["Support 220", "Resistance 240"],
    }
    doc.update(extra)
    return json.dumps(doc)


def signals_doc(symbol, date, strengths, **extra):
    """Technical signals JSON (signals under "signals")."""
    doc = {
        "symbol": symbol,
        "timestamp": f"{date}T06:30:00Z",
        "date": date,
        "price": 231.45,
        "change_pct": 1.2,
        "volume": 48_000_000,
        "indicators": {"RSI": 58.2, "MACD": 1.35, "ADX": "N/A"},
        "moving_averages": {"SMA_50": 221.4, "SMA_200": 205.9},
        "signals": [make_signal(s, name=f"{symbol}_TECH_{i}") for i, s in enumerate(strengths)],
        "signal_count": len(strengths),
        "bullish_count": 2,
        "bearish_count": 1,
    }
    doc.update(extra)
    return json.dumps(doc)


@pytest.fixture
def sample_store(fake_s3):
    """Store with three partitions and a couple of symbols.

    2026-02-06: AAPL signals + analysis, MSFT analysis
    2026-02-07: AAPL analysis only (two runs), ORCL signals
    2026-02-08: MSFT signals only
    spreads-yo: two AAPL reports, one MSFT report
    """
    return fake_s3({
        "daily/2026-02-06/signals_AAPL_20260206_063000.json": signals_doc("AAPL", "2026-02-06", ["LOW"]),
        "daily/2026-02-06/AAPL_gemini_analysis_20260206_064500.json":
            analysis_doc("AAPL", "2026-02-06", ["HIGH", "LOW"]),
        "daily/2026-02-06/MSFT_gemini_analysis_20260206_064500.json":
            analysis_doc("MSFT", "2026-02-06", ["MEDIUM"]),
        "daily/2026-02-07/AAPL_gemini_analysis_20260207_064500.json":
            analysis_doc("AAPL", "2026-02-07", ["MEDIUM"]),
        "daily/2026-02-07/AAPL_gemini_analysis_20260207_120000.json":
            analysis_doc("AAPL", "2026-02-07", ["EXTREME RISK", "LOW"]),
        "daily/2026-02-07/signals_orcl_20260207_063000.json": signals_doc("ORCL", "2026-02-07", ["HIGH"]),
        "daily/2026-02-08/signals_MSFT_20260208_063000.json": signals_doc("MSFT", "2026-02-08", ["LOW"]),
        "daily/README.txt": "layout notes",
        "spreads-yo/AAPL_spread_analysis_20260206_070000.md": SAMPLE_REPORT.replace("2026-02-08", "2026-02-06"),
        "spreads-yo/AAPL_spread_analysis_20260208_070000.md": SAMPLE_REPORT,
        "spreads-yo/MSFT_spread_analysis_20260208_070000.md": "# AI-Enhanced Options Analysis: MSFT\n\nNo setups today.\n",
    })


# ============================================================
# Spread reports
# ============================================================

SAMPLE_REPORT = """# AI-Enhanced Options Analysis: AAPL

**Date:** 2026-02-08
**Reference Price:** $231.45

## Technical Snapshot
- **RSI:** 58.2
- **MACD Histogram:** -0.35
- **Trend:** Bullish above 50-day SMA
- **Put Spread Bias:** favored

---

### Put Credit Spread (2026-02-20)
**Strategy:** Sell 220P / Buy 215P
**Est. Credit:** $1.35 | **Max Risk:** $3.65
**Analysis:**
Support at 222 held twice this week.
Implied volatility is elevated versus its 30-day average.
A close below 220 invalidates the setup.

---

### Put Credit Spread (2026-03-06)
**Strategy:** Sell 215P / Buy 210P
**Est. Credit:** $1.10 | **Max Risk:** $3.90
**Analysis:**
Wider cushion below the 50-day SMA.

### Call Credit Spread (2026-02-20)
**Strategy:** Sell 245C / Buy 250C
**Est. Credit:** $0.95 | **Max Risk:** $4.05
**Analysis:**
Resistance at 240 capped the last two rallies.
"""


@pytest.fixture
def sample_report_text():
    return SAMPLE_REPORT
