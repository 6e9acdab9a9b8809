"""
Mapping applier service.

Persists accepted suggestions as mapping rows. Mutual exclusion comes from
the (ledger_name, period_id) unique constraint alone: when two callers race
on the same pair, the loser gets DuplicateMappingError.
"""
import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgermap.config import get_settings
from ledgermap.exceptions import (
    DuplicateMappingError,
    MappingNotFoundError,
    ValidationError,
)
from ledgermap.models.mapping import Mapping, MappingType
from ledgermap.models.taxonomy import TaxonomyItem
from ledgermap.services.ledger_source import get_mapped_ledger_names
from ledgermap.services.period_service import LATEST_PERIOD, PeriodSelector, resolve_period
from ledgermap.services.suggestion_service import Suggestion
from ledgermap.services.taxonomy_service import get_taxonomy_item

logger = structlog.get_logger(__name__)

REASON_DUPLICATE = "duplicate_mapping"
REASON_UNKNOWN_ITEM = "taxonomy_item_not_found"
REASON_ABORTED = "batch_aborted"


class BulkApplyMode(str, enum.Enum):
    """Failure policy for bulk apply."""

    BEST_EFFORT = "best_effort"  # each row commits on its own
    ALL_OR_NOTHING = "all_or_nothing"  # any conflict writes nothing


@dataclass
class FailedMapping:
    """A bulk-apply row that was not written."""

    ledger_name: str
    reason: str


@dataclass
class BulkApplyResult:
    """Per-row breakdown of a bulk apply."""

    period_id: int
    threshold: float
    mode: BulkApplyMode
    applied: int = 0
    skipped: int = 0  # below threshold, left untouched
    failed: List[FailedMapping] = field(default_factory=list)
    mappings: List[Mapping] = field(default_factory=list)


class MappingApplier:
    """Writes mappings singly or in threshold-gated batches."""

    def __init__(
        self,
        default_threshold: Optional[float] = None,
        default_mode: Optional[BulkApplyMode] = None,
    ):
        """
        Initialize mapping applier.

        Args:
            default_threshold: Bulk-apply threshold when the caller gives none.
            default_mode: Bulk-apply failure policy when the caller gives none.
        """
        settings = get_settings()
        self._default_threshold = (
            default_threshold if default_threshold is not None else settings.bulk_apply_threshold
        )
        self._default_mode = default_mode or BulkApplyMode(settings.bulk_apply_mode)

    def apply_one(
        self,
        db: Session,
        ledger_name: str,
        taxonomy_item_id: int,
        period: PeriodSelector = LATEST_PERIOD,
        mapping_type: MappingType = MappingType.MANUAL,
        confidence_score: Optional[float] = None,
        pending: Optional[List[Suggestion]] = None,
    ) -> Mapping:
        """
        Insert one mapping.

        Args:
            db: Database session.
            ledger_name: Ledger account name to map.
            taxonomy_item_id: Target taxonomy item.
            period: Period id or ``LATEST_PERIOD``.
            mapping_type: How the mapping was decided.
            confidence_score: Suggestion confidence (None for manual mappings).
            pending: Optional review list; the applied name is removed from it.

        Returns:
            The committed Mapping row.

        Raises:
            DuplicateMappingError: If the name is already mapped in the period.
            TaxonomyItemNotFoundError: If the taxonomy item does not exist.
            PeriodNotFoundError: If the period does not exist.
        """
        if not ledger_name or not ledger_name.strip():
            raise ValidationError("Ledger name is required", errors=["ledger_name"])

        period_row = resolve_period(db, period)
        get_taxonomy_item(db, taxonomy_item_id)

        mapping = Mapping(
            ledger_name=ledger_name,
            taxonomy_item_id=taxonomy_item_id,
            period_id=period_row.id,
            mapping_type=mapping_type,
            confidence_score=confidence_score,
        )
        db.add(mapping)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(
                "Duplicate mapping rejected",
                ledger_name=ledger_name,
                period_id=period_row.id,
            )
            raise DuplicateMappingError(ledger_name, period_row.id) from e

        db.refresh(mapping)
        _remove_pending(pending, {ledger_name})

        logger.info(
            "Mapping applied",
            mapping_id=mapping.id,
            ledger_name=ledger_name,
            taxonomy_item_id=taxonomy_item_id,
            period_id=period_row.id,
            mapping_type=mapping_type.value,
        )
        return mapping

    def apply_suggestion(
        self,
        db: Session,
        suggestion: Suggestion,
        period: PeriodSelector = LATEST_PERIOD,
        pending: Optional[List[Suggestion]] = None,
    ) -> Mapping:
        """Accept a single suggestion as an ai_suggested mapping."""
        return self.apply_one(
            db,
            ledger_name=suggestion.ledger_name,
            taxonomy_item_id=suggestion.suggested_taxonomy_item_id,
            period=period,
            mapping_type=MappingType.AI_SUGGESTED,
            confidence_score=suggestion.confidence,
            pending=pending,
        )

    def bulk_apply(
        self,
        db: Session,
        suggestions: Iterable[Suggestion],
        threshold: Optional[float] = None,
        period: PeriodSelector = LATEST_PERIOD,
        mode: Optional[BulkApplyMode] = None,
        pending: Optional[List[Suggestion]] = None,
    ) -> BulkApplyResult:
        """
        Apply every suggestion whose confidence meets the threshold.

        Args:
            db: Database session.
            suggestions: Candidate suggestions.
            threshold: Minimum confidence (inclusive).
            period: Period id or ``LATEST_PERIOD``.
            mode: BEST_EFFORT commits row by row; ALL_OR_NOTHING writes
                nothing if any row conflicts.
            pending: Optional review list; applied names are removed from it.

        Returns:
            BulkApplyResult with applied count and per-row failures.
        """
        threshold = self._default_threshold if threshold is None else threshold
        mode = BulkApplyMode(mode) if mode is not None else self._default_mode
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError("Threshold must be between 0 and 1", errors=[f"threshold={threshold}"])

        period_row = resolve_period(db, period)
        suggestions = list(suggestions)
        eligible = [s for s in suggestions if s.confidence >= threshold]

        result = BulkApplyResult(
            period_id=period_row.id,
            threshold=threshold,
            mode=mode,
            skipped=len(suggestions) - len(eligible),
        )

        logger.info(
            "Starting bulk apply",
            period_id=period_row.id,
            eligible=len(eligible),
            skipped=result.skipped,
            threshold=threshold,
            mode=mode.value,
        )

        known_items = self._known_item_ids(db, eligible)
        if mode is BulkApplyMode.ALL_OR_NOTHING:
            self._apply_all_or_nothing(db, eligible, known_items, result)
        else:
            self._apply_best_effort(db, eligible, known_items, result)

        _remove_pending(pending, {m.ledger_name for m in result.mappings})

        logger.info(
            "Bulk apply complete",
            period_id=period_row.id,
            applied=result.applied,
            failed=len(result.failed),
        )
        return result

    def _apply_best_effort(
        self,
        db: Session,
        eligible: List[Suggestion],
        known_items: Set[int],
        result: BulkApplyResult,
    ) -> None:
        """Commit each row independently; earlier rows survive later failures."""
        for suggestion in eligible:
            if suggestion.suggested_taxonomy_item_id not in known_items:
                result.failed.append(FailedMapping(suggestion.ledger_name, REASON_UNKNOWN_ITEM))
                continue

            mapping = self._build_mapping(suggestion, result.period_id)
            db.add(mapping)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                result.failed.append(FailedMapping(suggestion.ledger_name, REASON_DUPLICATE))
                continue

            result.mappings.append(mapping)
            result.applied += 1

    def _apply_all_or_nothing(
        self,
        db: Session,
        eligible: List[Suggestion],
        known_items: Set[int],
        result: BulkApplyResult,
    ) -> None:
        """Check every row first, then write the batch in one transaction."""
        already_mapped = get_mapped_ledger_names(db, result.period_id)
        conflicts: Dict[int, str] = {}
        batch_names: Set[str] = set()

        for index, suggestion in enumerate(eligible):
            if suggestion.suggested_taxonomy_item_id not in known_items:
                conflicts[index] = REASON_UNKNOWN_ITEM
            elif suggestion.ledger_name in already_mapped or suggestion.ledger_name in batch_names:
                conflicts[index] = REASON_DUPLICATE
            batch_names.add(suggestion.ledger_name)

        if conflicts:
            result.failed = [
                FailedMapping(s.ledger_name, conflicts.get(i, REASON_ABORTED))
                for i, s in enumerate(eligible)
            ]
            logger.warning("Bulk apply aborted", conflicts=len(conflicts))
            return

        mappings = [self._build_mapping(s, result.period_id) for s in eligible]
        db.add_all(mappings)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent writer after the pre-check
            db.rollback()
            result.failed = [FailedMapping(s.ledger_name, REASON_ABORTED) for s in eligible]
            logger.warning("Bulk apply aborted by concurrent write", rows=len(eligible))
            return

        result.mappings = mappings
        result.applied = len(mappings)

    @staticmethod
    def _build_mapping(suggestion: Suggestion, period_id: int) -> Mapping:
        return Mapping(
            ledger_name=suggestion.ledger_name,
            taxonomy_item_id=suggestion.suggested_taxonomy_item_id,
            period_id=period_id,
            mapping_type=MappingType.AI_SUGGESTED,
            confidence_score=suggestion.confidence,
        )

    @staticmethod
    def _known_item_ids(db: Session, suggestions: List[Suggestion]) -> Set[int]:
        wanted = {s.suggested_taxonomy_item_id for s in suggestions}
        if not wanted:
            return set()
        rows = db.query(TaxonomyItem.id).filter(TaxonomyItem.id.in_(wanted)).all()
        return {row.id for row in rows}


def list_mappings(db: Session, period_id: int) -> List[Mapping]:
    """Get a period's mappings ordered by ledger name."""
    return (
        db.query(Mapping)
        .filter(Mapping.period_id == period_id)
        .order_by(Mapping.ledger_name)
        .all()
    )


def delete_mapping(db: Session, mapping_id: int) -> None:
    """
    Delete a mapping so its ledger name becomes unmapped again.

    Raises:
        MappingNotFoundError: If no such mapping exists.
    """
    mapping = db.get(Mapping, mapping_id)
    if mapping is None:
        raise MappingNotFoundError(mapping_id)

    ledger_name = mapping.ledger_name
    db.delete(mapping)
    db.commit()
    logger.info("Mapping deleted", mapping_id=mapping_id, ledger_name=ledger_name)


def _remove_pending(pending: Optional[List[Suggestion]], names: Set[str]) -> None:
    """Drop applied names from a caller-owned review list, in place."""
    if pending is None or not names:
        return
    pending[:] = [s for s in pending if s.ledger_name not in names]


# Singleton instance
_applier_instance: Optional[MappingApplier] = None


def get_mapping_applier() -> MappingApplier:
    """Get singleton MappingApplier instance."""
    global _applier_instance
    if _applier_instance is None:
        _applier_instance = MappingApplier()
    return _applier_instance
