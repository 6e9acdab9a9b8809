"""
Tests for the keyword/synonym semantic matcher.
"""
import pytest

from ledgermap.services.semantic_matcher import (
    KeywordSynonymMatcher,
    SemanticMatcher,
    get_semantic_matcher,
    normalize,
    tokenize,
)


class TestNormalize:
    """Tests for text normalization."""

    def test_uppercases_and_collapses_whitespace(self):
        assert normalize("  cash   in hand ") == "CASH IN HAND"

    def test_punctuation_becomes_separator(self):
        assert normalize("Non-Current Assets") == "NON CURRENT ASSETS"
        assert normalize("Property, Plant and Equipment") == "PROPERTY PLANT AND EQUIPMENT"

    def test_ampersand_is_kept(self):
        assert tokenize("P&L Account") == ["P&L", "ACCOUNT"]

    def test_empty_values(self):
        assert normalize(None) == ""
        assert normalize("") == ""
        assert tokenize("   ") == []


class TestKeywordSynonymMatcher:
    """Tests for KeywordSynonymMatcher scoring."""

    @pytest.fixture
    def matcher(self) -> KeywordSynonymMatcher:
        return KeywordSynonymMatcher()

    def test_direct_overlap_is_capped(self, matcher):
        """Cash/Cash twice plus HAND/AND would exceed the cap."""
        result = matcher.compare("Cash in Hand", "Cash and Cash Equivalents")

        assert result.score == pytest.approx(0.30)
        assert ("CASH", "CASH") in result.direct_overlaps
        assert ("HAND", "AND") in result.direct_overlaps

    def test_synonym_hit(self, matcher):
        result = matcher.compare("Sundry Debtors", "Trade Receivables")

        assert result.score == pytest.approx(0.15)
        assert result.direct_overlaps == []
        assert ("DEBTORS", "TRADE RECEIVABLE") in result.synonym_hits

    def test_short_key_needs_whole_token(self, matcher):
        """OD must not fire inside GOODS."""
        result = matcher.compare("Goods Purchased", "Bank Overdraft")

        assert result.score == 0.0
        assert not result.matched

    def test_short_key_as_token(self, matcher):
        result = matcher.compare("Axis Bank OD", "Bank Overdraft")

        assert result.score == pytest.approx(0.30)
        assert ("OD", "OVERDRAFT") in result.synonym_hits

    def test_phrase_key_matches_plural(self, matcher):
        result = matcher.compare("Term Loans", "Long Term Borrowings")

        assert ("TERM LOAN", "LONG TERM BORROWING") in result.synonym_hits
        assert result.score == pytest.approx(0.30)

    def test_account_suffix_is_one_token(self, matcher):
        """A/c must not split into single letters that hit every item token."""
        assert tokenize("Interest A/c") == ["INTEREST", "A/C"]

        unrelated = matcher.compare("Interest A/c", "Cost of Materials Consumed")
        related = matcher.compare("Interest A/c", "Finance Costs")

        assert unrelated.score == 0.0
        assert unrelated.direct_overlaps == []
        assert related.score == pytest.approx(0.15)
        assert ("INTEREST", "FINANCE COST") in related.synonym_hits

    def test_short_tokens_match_whole_only(self, matcher):
        result = matcher.compare("Advance to A Shah", "Changes in Inventories")

        assert result.direct_overlaps == []
        assert result.score == 0.0

    def test_no_overlap(self, matcher):
        result = matcher.compare("Rent Deposit", "Finance Costs")

        assert result.score == 0.0

    def test_empty_names(self, matcher):
        assert matcher.compare("", "Borrowings").score == 0.0
        assert matcher.compare("Bank Loan", "").score == 0.0

    def test_custom_synonym_table(self):
        matcher = KeywordSynonymMatcher({"petty": ["cash"]})

        result = matcher.compare("Petty Float", "Cash")

        assert result.score == pytest.approx(0.15)
        assert result.synonym_hits == [("PETTY", "CASH")]

    def test_score_never_exceeds_cap(self, matcher):
        names = [
            ("Bank Loan Term Loan Borrowing", "Long Term Borrowings Bank Borrowing"),
            ("Cash Cash Cash", "Cash and Cash Equivalents"),
            ("Trade Payable Creditors", "Trade Payables"),
        ]
        for ledger_name, item_name in names:
            assert 0.0 <= matcher.compare(ledger_name, item_name).score <= matcher.MAX_SCORE


class TestSemanticMatcherSingleton:
    """Tests for the module-level singleton."""

    def test_singleton_is_keyword_matcher(self):
        matcher = get_semantic_matcher()

        assert isinstance(matcher, SemanticMatcher)
        assert isinstance(matcher, KeywordSynonymMatcher)
        assert get_semantic_matcher() is matcher
