"""
Matching engine service.

Scores how well one ledger entry fits one taxonomy item.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import structlog

from ledgermap.services.semantic_matcher import (
    SemanticMatcher,
    get_semantic_matcher,
    normalize,
)

logger = structlog.get_logger(__name__)

# Account type -> keywords that must appear in the candidate's report section
TYPE_SECTION_KEYWORDS = {
    "ASSETS": ("ASSET",),
    "LIABILITIES": ("LIABILITY", "LIABILITIES"),
    "EQUITY": ("EQUITY",),
    "REVENUE": ("INCOME", "REVENUE"),
    "EXPENSES": ("EXPENSE", "EXPENDITURE"),
}

CATEGORY_KEYWORDS = ("CURRENT", "FIXED", "CASH")


def account_type_name(account_type: Any) -> str:
    """Normalize an AccountType enum, a raw string, or None to an upper-case name."""
    if account_type is None:
        return ""
    value = getattr(account_type, "value", account_type)
    return normalize(str(value))


def is_type_compatible(account_type: Any, report_section: Optional[str]) -> bool:
    """
    Check whether an account type corresponds to a report section.

    This is both the +0.40 scoring factor and the candidate pre-filter used
    by the suggestion generator.
    """
    keywords = TYPE_SECTION_KEYWORDS.get(account_type_name(account_type))
    if not keywords:
        return False
    section = normalize(report_section)
    return any(keyword in section for keyword in keywords)


@dataclass
class MatchBreakdown:
    """Per-factor contributions to a match score."""

    type_match: float = 0.0
    category: float = 0.0
    loan: float = 0.0
    semantic: float = 0.0
    matched_categories: List[str] = field(default_factory=list)
    borrowing_match: bool = False
    overdraft_match: bool = False

    @property
    def total(self) -> float:
        """Sum of all factors clamped to [0, 1]."""
        raw = self.type_match + self.category + self.loan + self.semantic
        return max(0.0, min(round(raw, 10), 1.0))


class MatchingEngine:
    """
    Additive scorer for (ledger entry, taxonomy item) pairs.

    Factors:
    1. Type match: account type corresponds to report section (+0.40)
    2. Category alignment: CURRENT / FIXED / CASH shared by category and item (+0.30 each)
    3. Loan terms against a borrowing item (+0.35)
    4. Overdraft against a current/short-term item or section (+0.30)
    5. Semantic overlap of names (up to +0.30)

    Entries and candidates are duck-typed: ORM rows and plain objects with
    the same attribute names both work.
    """

    TYPE_WEIGHT = 0.40
    CATEGORY_WEIGHT = 0.30
    BORROWING_WEIGHT = 0.35
    OVERDRAFT_WEIGHT = 0.30

    def __init__(self, semantic_matcher: Optional[SemanticMatcher] = None):
        """
        Initialize matching engine.

        Args:
            semantic_matcher: Name-similarity strategy.
        """
        self._semantic = semantic_matcher or get_semantic_matcher()

    def score(self, entry: Any, candidate: Any) -> float:
        """
        Score a candidate for an entry.

        Returns:
            Match score in [0, 1].
        """
        return self.evaluate(entry, candidate).total

    def evaluate(self, entry: Any, candidate: Any) -> MatchBreakdown:
        """Score a candidate and keep the contribution of each factor."""
        breakdown = MatchBreakdown()

        category = normalize(getattr(entry, "account_category", None))
        item_name = normalize(candidate.item_name)
        section = normalize(candidate.report_section)

        if is_type_compatible(entry.account_type, candidate.report_section):
            breakdown.type_match = self.TYPE_WEIGHT

        for keyword in CATEGORY_KEYWORDS:
            if keyword in category and keyword in item_name:
                breakdown.category += self.CATEGORY_WEIGHT
                breakdown.matched_categories.append(keyword)

        entry_tokens = normalize(entry.ledger_name).split() + category.split()
        if self._has_loan_terms(entry_tokens):
            if "BORROWING" in item_name or "BORROWING" in section:
                breakdown.loan += self.BORROWING_WEIGHT
                breakdown.borrowing_match = True
            if self._has_overdraft_terms(entry_tokens) and (
                self._mentions_short_term(item_name) or self._mentions_short_term(section)
            ):
                breakdown.loan += self.OVERDRAFT_WEIGHT
                breakdown.overdraft_match = True

        breakdown.semantic = self._semantic.compare(entry.ledger_name, candidate.item_name).score

        return breakdown

    def best_candidate(
        self, entry: Any, candidates: Sequence[Any]
    ) -> Optional[Tuple[Any, MatchBreakdown]]:
        """
        Pick the highest-scoring candidate.

        Ties go to the lowest ``display_order``, then the lowest id, so the
        result does not depend on the order candidates were loaded in.
        """
        best: Optional[Tuple[Any, MatchBreakdown]] = None
        for candidate in candidates:
            breakdown = self.evaluate(entry, candidate)
            if best is None or self._beats(candidate, breakdown, *best):
                best = (candidate, breakdown)
        return best

    @staticmethod
    def _beats(
        candidate: Any,
        breakdown: MatchBreakdown,
        best_candidate: Any,
        best_breakdown: MatchBreakdown,
    ) -> bool:
        if breakdown.total != best_breakdown.total:
            return breakdown.total > best_breakdown.total
        return _order_key(candidate) < _order_key(best_candidate)

    @staticmethod
    def _has_loan_terms(tokens: List[str]) -> bool:
        return any(
            "LOAN" in token or token == "OD" or "OVERDRAFT" in token
            for token in tokens
        )

    @staticmethod
    def _has_overdraft_terms(tokens: List[str]) -> bool:
        return any(token == "OD" or "OVERDRAFT" in token for token in tokens)

    @staticmethod
    def _mentions_short_term(text: str) -> bool:
        # "NON CURRENT" sections are long-term even though they contain CURRENT
        text = text.replace("NON CURRENT", "")
        return "CURRENT" in text or "SHORT" in text


def _order_key(candidate: Any) -> Tuple[int, int]:
    display_order = getattr(candidate, "display_order", None)
    item_id = getattr(candidate, "id", None)
    return (
        display_order if display_order is not None else 0,
        item_id if item_id is not None else 0,
    )


# Singleton instance
_engine_instance: Optional[MatchingEngine] = None


def get_matching_engine() -> MatchingEngine:
    """Get singleton MatchingEngine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = MatchingEngine()
    return _engine_instance
