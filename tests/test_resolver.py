"""Tests for the latest-artifact resolver."""

import json

import pytest

from conftest import analysis_doc, signals_doc
from src.shared.errors import (
    ArtifactNotFoundError,
    ArtifactStoreError,
    MalformedArtifactError,
)
from src.shared.models import ArtifactKind, NumberValue, TextValue
from src.shared.resolver import (
    decode_analysis,
    iter_partitions_newest_first,
    resolve_for_date,
    resolve_latest,
    resolve_latest_report,
    select_candidates,
)
from src.shared.artifacts import classify_keys


# ============================================================
# resolve_latest
# ============================================================

class TestResolveLatest:
    """First partition with a match wins, kinds are never backfilled."""

    def test_newest_partition_without_backfill(self, sample_store):
        """MSFT: 02-08 has signals only; 02-06 analysis is not pulled in."""
        bundle = resolve_latest("MSFT", client=sample_store)
        assert bundle.partition == "2026-02-08"
        assert bundle.kinds == [ArtifactKind.SIGNALS]
        assert bundle.analysis is None
        assert bundle.primary is bundle.signals

    def test_greatest_filename_wins_within_partition(self, sample_store):
        bundle = resolve_latest("AAPL", client=sample_store)
        assert bundle.partition == "2026-02-07"
        assert bundle.kinds == [ArtifactKind.ANALYSIS]
        assert bundle.analysis.source_key.endswith("AAPL_gemini_analysis_20260207_120000.json")
        assert [s.strength for s in bundle.analysis.signals] == ["EXTREME RISK", "LOW"]

    def test_both_kinds_in_same_partition(self, fake_s3):
        client = fake_s3({
            "daily/2026-02-08/signals_AAPL_1.json": signals_doc("AAPL", "2026-02-08", ["LOW"]),
            "daily/2026-02-08/AAPL_gemini_analysis_1.json": analysis_doc("AAPL", "2026-02-08", ["HIGH"]),
        })
        bundle = resolve_latest("AAPL", client=client)
        assert bundle.kinds == [ArtifactKind.SIGNALS, ArtifactKind.ANALYSIS]
        assert bundle.primary is bundle.analysis

    def test_lowercase_symbol(self, sample_store):
        bundle = resolve_latest(" orcl ", client=sample_store)
        assert bundle.symbol == "ORCL"
        assert bundle.partition == "2026-02-07"

    def test_unknown_symbol(self, sample_store):
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            resolve_latest("TSLA", client=sample_store)
        assert exc_info.value.symbol == "TSLA"

    def test_empty_store(self, fake_s3):
        with pytest.raises(ArtifactNotFoundError):
            resolve_latest("AAPL", client=fake_s3())

    def test_invalid_json(self, fake_s3):
        client = fake_s3({"daily/2026-02-08/AAPL_gemini_analysis_1.json": "{not json"})
        with pytest.raises(MalformedArtifactError) as exc_info:
            resolve_latest("AAPL", client=client)
        assert exc_info.value.key == "daily/2026-02-08/AAPL_gemini_analysis_1.json"

    def test_malformed_newest_is_not_skipped(self, fake_s3):
        """A broken artifact in the newest partition does not fall back."""
        client = fake_s3({
            "daily/2026-02-07/signals_AAPL_1.json": signals_doc("AAPL", "2026-02-07", ["LOW"]),
            "daily/2026-02-08/signals_AAPL_1.json": json.dumps({"signals": "HIGH"}),
        })
        with pytest.raises(MalformedArtifactError, match="signals must be a list"):
            resolve_latest("AAPL", client=client)

    def test_non_finite_count(self, fake_s3):
        client = fake_s3({
            "daily/2026-02-08/AAPL_gemini_analysis_1.json": analysis_doc(
                "AAPL", "2026-02-08", ["HIGH"], signal_count=float("nan"),
            ),
        })
        with pytest.raises(MalformedArtifactError, match="finite number"):
            resolve_latest("AAPL", client=client)

    def test_invalid_utf8(self, fake_s3):
        client = fake_s3({"daily/2026-02-08/signals_AAPL_1.json": b"\xff\xfe"})
        with pytest.raises(MalformedArtifactError, match="UTF-8"):
            resolve_latest("AAPL", client=client)

    def test_listing_failure(self, fake_s3):
        client = fake_s3({}, failing_prefixes={"daily/"})
        with pytest.raises(ArtifactStoreError):
            resolve_latest("AAPL", client=client)

    def test_unknown_listing_mode(self, sample_store):
        with pytest.raises(ValueError, match="Unknown listing mode"):
            resolve_latest("AAPL", client=sample_store, listing="recursive")


class TestPerPartitionListing:
    """per_partition mode gives the same answer and stops early."""

    @pytest.mark.parametrize("symbol", ["AAPL", "MSFT", "ORCL"])
    def test_matches_flat_mode(self, sample_store, symbol):
        flat = resolve_latest(symbol, client=sample_store, listing="flat")
        lazy = resolve_latest(symbol, client=sample_store, listing="per_partition")
        assert flat == lazy

    def test_stops_at_first_match(self, sample_store):
        resolve_latest("MSFT", client=sample_store, listing="per_partition")
        assert sample_store.listed_prefixes == ["daily/", "daily/2026-02-08/"]

    def test_walks_back_until_match(self, sample_store):
        resolve_latest("AAPL", client=sample_store, listing="per_partition")
        assert "daily/2026-02-07/" in sample_store.listed_prefixes
        assert "daily/2026-02-06/" not in sample_store.listed_prefixes

    def test_partition_listing_failure_aborts(self, fake_s3):
        client = fake_s3(
            {
                "daily/2026-02-07/signals_AAPL_1.json": signals_doc("AAPL", "2026-02-07", ["LOW"]),
                "daily/2026-02-08/signals_MSFT_1.json": signals_doc("MSFT", "2026-02-08", ["LOW"]),
            },
            failing_prefixes={"daily/2026-02-08/"},
        )
        with pytest.raises(ArtifactStoreError):
            resolve_latest("AAPL", client=client, listing="per_partition")

    def test_partitions_newest_first(self, sample_store):
        partitions = [p for p, _ in iter_partitions_newest_first(client=sample_store)]
        assert partitions == ["2026-02-08", "2026-02-07", "2026-02-06"]


# ============================================================
# select_candidates
# ============================================================

def test_select_candidates_per_kind():
    refs = classify_keys([
        "daily/2026-02-08/signals_AAPL_20260208_063000.json",
        "daily/2026-02-08/signals_AAPL_20260208_180000.json",
        "daily/2026-02-08/AAPL_gemini_analysis_20260208_064500.json",
        "daily/2026-02-08/signals_MSFT_20260208_230000.json",
    ])
    chosen = select_candidates(refs, "aapl")
    assert chosen[ArtifactKind.SIGNALS].filename == "signals_AAPL_20260208_180000.json"
    assert chosen[ArtifactKind.ANALYSIS].filename == "AAPL_gemini_analysis_20260208_064500.json"


def test_select_candidates_restricted_kinds():
    refs = classify_keys(["daily/2026-02-08/signals_AAPL_1.json"])
    assert select_candidates(refs, "AAPL", kinds=(ArtifactKind.ANALYSIS,)) == {}


# ============================================================
# resolve_for_date
# ============================================================

def test_resolve_for_date(sample_store):
    bundle = resolve_for_date("AAPL", "2026-02-06", client=sample_store)
    assert bundle.partition == "2026-02-06"
    assert bundle.kinds == [ArtifactKind.SIGNALS, ArtifactKind.ANALYSIS]
    assert sample_store.listed_prefixes == ["daily/2026-02-06/"]


def test_resolve_for_date_missing(sample_store):
    with pytest.raises(ArtifactNotFoundError):
        resolve_for_date("ORCL", "2026-02-08", client=sample_store)


def test_resolve_for_date_invalid_date(sample_store):
    with pytest.raises(ValueError):
        resolve_for_date("AAPL", "Feb 8", client=sample_store)


# ============================================================
# resolve_latest_report
# ============================================================

class TestResolveLatestReport:

    def test_newest_report_parsed(self, sample_store):
        report = resolve_latest_report("AAPL", client=sample_store)
        assert report.date == "2026-02-08"
        assert len(report.spreads) == 3
        assert sample_store.downloaded_keys == ["spreads-yo/AAPL_spread_analysis_20260208_070000.md"]

    def test_report_without_spreads(self, sample_store):
        assert resolve_latest_report("MSFT", client=sample_store) is None

    def test_no_report(self, sample_store):
        with pytest.raises(ArtifactNotFoundError):
            resolve_latest_report("ORCL", client=sample_store)


# ============================================================
# decode_analysis
# ============================================================

class TestDecodeAnalysis:
    """Field mapping of both structured artifact kinds."""

    def test_signals_document(self):
        record = decode_analysis(
            signals_doc("AAPL", "2026-02-08", ["HIGH", "LOW"]),
            source_key="daily/2026-02-08/signals_AAPL_1.json",
        )
        assert record.symbol == "AAPL"
        assert record.date == "2026-02-08"
        assert record.price == 231.45
        assert record.volume == 48_000_000
        assert record.indicators["RSI"] == NumberValue(58.2)
        assert record.indicators["ADX"] == TextValue("N/A")
        assert record.moving_averages["SMA_50"] == NumberValue(221.4)
        assert [s.strength for s in record.signals] == ["HIGH", "LOW"]
        assert record.signals[0].name == "AAPL_TECH_0"
        assert record.signal_count == 2
        assert record.bullish_count == 2
        assert record.source_key == "daily/2026-02-08/signals_AAPL_1.json"

    def test_analysis_document(self):
        record = decode_analysis(analysis_doc("MSFT", "2026-02-06", ["MEDIUM"], long_term_comment="Steady"))
        assert record.overall_bias == "BULLISH"
        assert record.recommendation == "HOLD"
        assert record.long_term_comment == "Steady"
        assert record.risk == ["Earnings next week"]
        assert record.key_levels == ["Support 220", "Resistance 240"]
        assert record.signals[0].strength == "MEDIUM"
        assert record.price is None

    def test_ai_score_and_alternate_names(self):
        text = json.dumps({
            "symbol": "aapl",
            "signals": [{"name": "GAP UP", "description": "d", "strength": "HIGH", "ai_score": 0.82}],
        })
        record = decode_analysis(text)
        assert record.symbol == "AAPL"
        assert record.signals[0].name == "GAP UP"
        assert record.signals[0].ai_score == 0.82

    def test_fallback_symbol(self):
        record = decode_analysis("{}", fallback_symbol="orcl")
        assert record.symbol == "ORCL"
        assert record.signals == []
        assert record.signal_count == 0

    def test_risk_as_string(self):
        record = decode_analysis(json.dumps({"risk": "Gap risk"}))
        assert record.risk == ["Gap risk"]

    @pytest.mark.parametrize("text, reason", [
        ("[]", "expected a JSON object"),
        ('{"signals_analyzed": {"a": 1}}', "signals must be a list"),
        ('{"signals": ["HIGH"]}', "signal #0 is not an object"),
        ('{"indicators": [1, 2]}', "'indicators' must be an object"),
        ('{"key_levels": 240}', "'key_levels' must be a list"),
        ('{"signals": [], "bullish_count": NaN}', "'bullish_count' must be a finite number"),
        ('{"signal_count": Infinity}', "'signal_count' must be a finite number"),
        ('{"bearish_count": "inf"}', "'bearish_count' must be a finite number"),
    ])
    def test_structural_errors(self, text, reason):
        with pytest.raises(MalformedArtifactError, match=reason):
            decode_analysis(text, source_key="k.json")
