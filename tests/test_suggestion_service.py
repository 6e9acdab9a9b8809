"""
Tests for the suggestion generator.
"""
from types import SimpleNamespace

import pytest

from ledgermap.services.suggestion_service import (
    ConfidenceBand,
    SuggestionGenerator,
    combine_confidence,
    confidence_band,
    filter_suggestions,
)


def entry(name, account_type="ASSETS", category=None, source_confidence=0.9, period_id=1):
    return SimpleNamespace(
        ledger_name=name,
        account_type=account_type,
        account_category=category,
        source_confidence=source_confidence,
        period_id=period_id,
    )


@pytest.fixture
def taxonomy():
    rows = [
        (1, "Property, Plant and Equipment", "Non-Current Assets", 101),
        (2, "Cash and Cash Equivalents", "Current Assets", 202),
        (3, "Trade Receivables", "Current Assets", 203),
        (4, "Borrowings", "Non-Current Liabilities", 401),
        (5, "Borrowings", "Current Liabilities", 501),
        (6, "Revenue from Operations", "Revenue", 601),
    ]
    return [
        SimpleNamespace(id=i, item_name=n, report_section=s, display_order=o)
        for i, n, s, o in rows
    ]


@pytest.fixture
def generator() -> SuggestionGenerator:
    return SuggestionGenerator()


class TestConfidence:
    """Tests for confidence helpers."""

    def test_combine_is_average(self):
        assert combine_confidence(0.9, 1.0) == pytest.approx(0.95)
        assert combine_confidence(0.95, 1.0) == pytest.approx(0.975)

    def test_combine_clamps(self):
        assert combine_confidence(1.5, 1.0) == 1.0
        assert combine_confidence(None, 0.4) == pytest.approx(0.2)

    @pytest.mark.parametrize("value,band", [
        (0.95, ConfidenceBand.HIGH),
        (0.8, ConfidenceBand.HIGH),
        (0.79, ConfidenceBand.MEDIUM),
        (0.6, ConfidenceBand.MEDIUM),
        (0.59, ConfidenceBand.LOW),
        (0.0, ConfidenceBand.LOW),
    ])
    def test_bands(self, value, band):
        assert confidence_band(value) == band


class TestGenerate:
    """Tests for SuggestionGenerator.generate."""

    def test_bank_overdraft_suggestion(self, generator, taxonomy):
        entries = [entry("Bank Overdraft", "LIABILITIES", "LOANS", 0.9)]

        suggestions = generator.generate(entries, taxonomy)

        assert len(suggestions) == 1
        s = suggestions[0]
        assert s.suggested_taxonomy_item_id == 5
        assert s.report_section == "Current Liabilities"
        assert s.match_score >= 0.70
        assert s.confidence >= 0.80
        assert s.confidence == pytest.approx(0.95)
        assert "Loan terms indicate borrowings" in s.reasoning
        assert "Overdraft is a short-term liability" in s.reasoning
        assert "High source confidence (90%)" in s.reasoning

    def test_cash_in_hand_suggestion(self, generator, taxonomy):
        suggestions = generator.generate([entry("Cash in Hand", "ASSETS", "CASH", 0.95)], taxonomy)

        s = suggestions[0]
        assert s.suggested_item_name == "Cash and Cash Equivalents"
        assert s.match_score == pytest.approx(1.0)
        assert s.confidence == pytest.approx(0.975)
        assert s.band == ConfidenceBand.HIGH
        assert s.reasoning.split("; ")[0] == 'Account type "ASSETS" matches "Current Assets"'
        assert 'Category "CASH" aligns with "Cash and Cash Equivalents"' in s.reasoning

    def test_skips_mapped_names(self, generator, taxonomy):
        entries = [entry("Cash in Hand"), entry("Sundry Debtors")]

        suggestions = generator.generate(entries, taxonomy, existing_mappings={"Cash in Hand"})

        assert [s.ledger_name for s in suggestions] == ["Sundry Debtors"]

    def test_skips_names_mapped_in_same_period_only(self, generator, taxonomy):
        entries = [entry("Cash in Hand", period_id=1), entry("Cash in Hand", period_id=2)]

        suggestions = generator.generate(
            entries, taxonomy, existing_mappings=[("Cash in Hand", 1)]
        )

        assert len(suggestions) == 1
        assert suggestions[0].period_id == 2

    def test_skips_malformed_entries(self, generator, taxonomy):
        entries = [
            entry("Cash in Hand", account_type=None),
            entry("   "),
            entry(""),
            entry("Sundry Debtors"),
        ]

        suggestions = generator.generate(entries, taxonomy)

        assert [s.ledger_name for s in suggestions] == ["Sundry Debtors"]

    def test_duplicate_names_give_one_suggestion(self, generator, taxonomy):
        entries = [entry("Sundry Debtors", source_confidence=0.9), entry("Sundry Debtors", source_confidence=0.2)]

        suggestions = generator.generate(entries, taxonomy)

        assert len(suggestions) == 1
        assert suggestions[0].source_confidence == pytest.approx(0.9)

    def test_entries_without_candidates_are_omitted(self, generator, taxonomy):
        entries = [entry("Share Capital", "EQUITY"), entry("Suspense", "OTHER")]

        assert generator.generate(entries, taxonomy) == []

    def test_empty_taxonomy(self, generator):
        assert generator.generate([entry("Cash in Hand")], []) == []

    def test_sorted_by_confidence_descending(self, generator, taxonomy):
        entries = [
            entry("Sundry Debtors", source_confidence=0.3),
            entry("Bank Overdraft", "LIABILITIES", "LOANS", 0.9),
            entry("Cash in Hand", "ASSETS", "CASH", 0.95),
        ]

        suggestions = generator.generate(entries, taxonomy)
        confidences = [s.confidence for s in suggestions]

        assert confidences == sorted(confidences, reverse=True)
        assert suggestions[0].ledger_name == "Cash in Hand"

    def test_equal_confidence_keeps_input_order(self, generator, taxonomy):
        entries = [entry("Misc One"), entry("Misc Two"), entry("Misc Three")]

        suggestions = generator.generate(entries, taxonomy)

        assert [s.ledger_name for s in suggestions] == ["Misc One", "Misc Two", "Misc Three"]

    def test_no_high_source_reason_below_threshold(self, generator, taxonomy):
        suggestions = generator.generate([entry("Cash in Hand", "ASSETS", "CASH", 0.5)], taxonomy)

        assert "High source confidence" not in suggestions[0].reasoning

    def test_generation_is_repeatable(self, generator, taxonomy):
        entries = [entry("Bank Overdraft", "LIABILITIES", "LOANS"), entry("Cash in Hand")]

        first = generator.generate(entries, taxonomy)
        second = generator.generate(entries, taxonomy)

        assert first == second


class TestFilterSuggestions:
    """Tests for review filters."""

    @pytest.fixture
    def suggestions(self, generator, taxonomy):
        entries = [
            entry("Bank Overdraft", "LIABILITIES", "LOANS", 0.9),
            entry("Cash in Hand", "ASSETS", "CASH", 0.95),
            entry("Sundry Debtors", "ASSETS", None, 0.3),
        ]
        return generator.generate(entries, taxonomy)

    def test_search_is_case_insensitive(self, suggestions):
        result = filter_suggestions(suggestions, search="CASH")

        assert [s.ledger_name for s in result] == ["Cash in Hand"]

    def test_band(self, suggestions):
        result = filter_suggestions(suggestions, band=ConfidenceBand.LOW)

        assert [s.ledger_name for s in result] == ["Sundry Debtors"]

    def test_account_type(self, suggestions):
        result = filter_suggestions(suggestions, account_type="liabilities")

        assert [s.ledger_name for s in result] == ["Bank Overdraft"]

    def test_no_filters_keeps_everything(self, suggestions):
        assert filter_suggestions(suggestions) == suggestions
