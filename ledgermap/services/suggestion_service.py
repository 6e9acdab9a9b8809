"""
Suggestion generator.

Turns unmapped ledger entries into ranked mapping suggestions. Generation is
a pure function of its inputs: nothing is cached between calls and nothing is
written to the database.
"""
import enum
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple, Union

import structlog

from ledgermap.config import get_settings
from ledgermap.services.matching_engine import (
    MatchBreakdown,
    MatchingEngine,
    account_type_name,
    get_matching_engine,
    is_type_compatible,
)

logger = structlog.get_logger(__name__)

ExistingMapping = Union[str, Tuple[str, Any]]


class ConfidenceBand(str, enum.Enum):
    """Review buckets for suggestion confidence."""

    HIGH = "high"  # >= 0.8
    MEDIUM = "medium"  # 0.6 - 0.8
    LOW = "low"  # < 0.6


@dataclass
class Suggestion:
    """A proposed mapping for one ledger name. Never persisted as-is."""

    ledger_name: str
    period_id: Any
    suggested_taxonomy_item_id: Any
    suggested_item_name: str
    report_section: str
    match_score: float
    confidence: float
    reasoning: str
    account_type: str
    account_category: Optional[str]
    source_confidence: float

    @property
    def band(self) -> ConfidenceBand:
        return confidence_band(self.confidence)


def confidence_band(confidence: float) -> ConfidenceBand:
    """Bucket a confidence value for review filtering."""
    if confidence >= 0.8:
        return ConfidenceBand.HIGH
    if confidence >= 0.6:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


def combine_confidence(source_confidence: float, match_score: float) -> float:
    """Average extraction confidence and match score, clamped to [0, 1]."""
    combined = ((source_confidence or 0.0) + match_score) / 2
    return max(0.0, min(combined, 1.0))


class SuggestionGenerator:
    """
    Generator for mapping suggestions.

    Process:
    1. Skip entries already mapped for their period, and malformed entries
    2. Pre-filter taxonomy items to the entry's account type
    3. Score the remaining candidates and keep the best one
    4. Combine match score with extraction confidence
    5. Sort by confidence (stable, so input order breaks ties)
    """

    def __init__(
        self,
        matching_engine: Optional[MatchingEngine] = None,
        high_source_confidence: Optional[float] = None,
    ):
        """
        Initialize suggestion generator.

        Args:
            matching_engine: Scorer for (entry, item) pairs.
            high_source_confidence: Threshold for the "high source confidence" reason.
        """
        settings = get_settings()
        self._engine = matching_engine or get_matching_engine()
        self._high_source_confidence = (
            high_source_confidence
            if high_source_confidence is not None
            else settings.high_source_confidence
        )
        self._min_source_confidence = settings.min_source_confidence

    def generate(
        self,
        entries: Iterable[Any],
        taxonomy: Sequence[Any],
        existing_mappings: Iterable[ExistingMapping] = (),
    ) -> List[Suggestion]:
        """
        Generate suggestions for unmapped entries.

        Args:
            entries: Ledger entries (ORM rows or compatible objects).
            taxonomy: Taxonomy items to match against.
            existing_mappings: Ledger names already mapped, either bare names
                or ``(ledger_name, period_id)`` pairs.

        Returns:
            Suggestions sorted by confidence, highest first.
        """
        if not taxonomy:
            logger.info("Taxonomy is empty, no suggestions generated")
            return []

        mapped: Set[ExistingMapping] = set(existing_mappings)
        seen: Set[Tuple[str, Any]] = set()
        suggestions: List[Suggestion] = []
        skipped_malformed = 0
        skipped_mapped = 0
        low_source = 0

        for entry in entries:
            name = entry.ledger_name
            period_id = getattr(entry, "period_id", None)

            if not name or not name.strip() or not account_type_name(entry.account_type):
                logger.debug("Skipping malformed entry", ledger_name=name, period_id=period_id)
                skipped_malformed += 1
                continue

            if name in mapped or (name, period_id) in mapped:
                skipped_mapped += 1
                continue

            # One suggestion per ledger name and period; mappings are keyed by name
            if (name, period_id) in seen:
                continue
            seen.add((name, period_id))

            if (entry.source_confidence or 0.0) < self._min_source_confidence:
                low_source += 1

            candidates = [
                item for item in taxonomy
                if is_type_compatible(entry.account_type, item.report_section)
            ]
            best = self._engine.best_candidate(entry, candidates)
            if best is None:
                continue

            item, breakdown = best
            suggestions.append(self._build_suggestion(entry, item, breakdown))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)

        logger.info(
            "Suggestions generated",
            suggestions=len(suggestions),
            skipped_mapped=skipped_mapped,
            skipped_malformed=skipped_malformed,
            low_source_confidence=low_source,
        )
        return suggestions

    def _build_suggestion(
        self, entry: Any, item: Any, breakdown: MatchBreakdown
    ) -> Suggestion:
        source_confidence = float(entry.source_confidence or 0.0)
        match_score = breakdown.total

        return Suggestion(
            ledger_name=entry.ledger_name,
            period_id=getattr(entry, "period_id", None),
            suggested_taxonomy_item_id=item.id,
            suggested_item_name=item.item_name,
            report_section=item.report_section,
            match_score=match_score,
            confidence=combine_confidence(source_confidence, match_score),
            reasoning=self._build_reasoning(entry, item, breakdown),
            account_type=account_type_name(entry.account_type),
            account_category=getattr(entry, "account_category", None),
            source_confidence=source_confidence,
        )

    def _build_reasoning(self, entry: Any, item: Any, breakdown: MatchBreakdown) -> str:
        """Explain which factors fired, joined with semicolons."""
        reasons = []

        if breakdown.type_match:
            reasons.append(
                f'Account type "{account_type_name(entry.account_type)}" matches "{item.report_section}"'
            )
        if breakdown.category:
            reasons.append(
                f'Category "{entry.account_category}" aligns with "{item.item_name}"'
            )
        if breakdown.borrowing_match:
            reasons.append("Loan terms indicate borrowings")
        if breakdown.overdraft_match:
            reasons.append("Overdraft is a short-term liability")
        if breakdown.semantic:
            reasons.append(f'Name overlaps with "{item.item_name}"')

        source_confidence = entry.source_confidence or 0.0
        if source_confidence >= self._high_source_confidence:
            reasons.append(f"High source confidence ({round(source_confidence * 100)}%)")

        return "; ".join(reasons)


def filter_suggestions(
    suggestions: Iterable[Suggestion],
    search: Optional[str] = None,
    band: Optional[ConfidenceBand] = None,
    account_type: Optional[str] = None,
) -> List[Suggestion]:
    """
    Narrow suggestions for review.

    Args:
        suggestions: Suggestions to filter (order is kept).
        search: Case-insensitive substring of the ledger name.
        band: Confidence band to keep.
        account_type: Account type to keep (e.g., "ASSETS").
    """
    needle = search.strip().lower() if search else ""
    wanted_type = account_type_name(account_type) if account_type else ""

    return [
        s for s in suggestions
        if (not needle or needle in s.ledger_name.lower())
        and (band is None or s.band == band)
        and (not wanted_type or s.account_type == wanted_type)
    ]


# Singleton instance
_generator_instance: Optional[SuggestionGenerator] = None


def get_suggestion_generator() -> SuggestionGenerator:
    """Get singleton SuggestionGenerator instance."""
    global _generator_instance
    if _generator_instance is None:
        _generator_instance = SuggestionGenerator()
    return _generator_instance
