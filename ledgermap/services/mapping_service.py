"""
Mapping service.

Entry points used by the HTTP layer. Each call loads what it needs from the
database, delegates to the generator, applier or statistics service, and
returns plain results; no state is kept between calls.
"""
from typing import List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from ledgermap.models.mapping import Mapping, MappingType
from ledgermap.services.ledger_source import get_mapped_ledger_names, get_period_entries
from ledgermap.services.mapping_applier import (
    BulkApplyMode,
    BulkApplyResult,
    get_mapping_applier,
)
from ledgermap.services.period_service import LATEST_PERIOD, PeriodSelector, resolve_period
from ledgermap.services.statistics_service import MappingStatistics, MappingStatisticsService
from ledgermap.services.suggestion_service import (
    ConfidenceBand,
    Suggestion,
    filter_suggestions,
    get_suggestion_generator,
)
from ledgermap.services.taxonomy_service import list_taxonomy_items

logger = structlog.get_logger(__name__)


def generate_suggestions(
    db: Session,
    period: PeriodSelector = LATEST_PERIOD,
    search: Optional[str] = None,
    band: Optional[ConfidenceBand] = None,
    account_type: Optional[str] = None,
) -> List[Suggestion]:
    """
    Generate suggestions for a period's unmapped ledger names.

    Args:
        db: Database session.
        period: Period id or ``LATEST_PERIOD``.
        search: Optional ledger name substring.
        band: Optional confidence band.
        account_type: Optional account type.

    Returns:
        Suggestions sorted by confidence, highest first.
    """
    period_row = resolve_period(db, period)
    entries = get_period_entries(db, period_row.id)
    taxonomy = list_taxonomy_items(db)
    mapped = get_mapped_ledger_names(db, period_row.id)

    suggestions = get_suggestion_generator().generate(entries, taxonomy, mapped)

    if search or band or account_type:
        suggestions = filter_suggestions(suggestions, search, band, account_type)

    logger.debug(
        "Suggestions ready",
        period_id=period_row.id,
        entries=len(entries),
        suggestions=len(suggestions),
    )
    return suggestions


def apply_mapping(
    db: Session,
    ledger_name: str,
    taxonomy_item_id: int,
    period: PeriodSelector = LATEST_PERIOD,
    mapping_type: MappingType = MappingType.MANUAL,
    confidence_score: Optional[float] = None,
) -> Mapping:
    """Persist one mapping (see ``MappingApplier.apply_one``)."""
    return get_mapping_applier().apply_one(
        db,
        ledger_name=ledger_name,
        taxonomy_item_id=taxonomy_item_id,
        period=period,
        mapping_type=mapping_type,
        confidence_score=confidence_score,
    )


def bulk_apply_mappings(
    db: Session,
    period: PeriodSelector = LATEST_PERIOD,
    threshold: Optional[float] = None,
    mode: Optional[BulkApplyMode] = None,
) -> BulkApplyResult:
    """
    Generate suggestions for a period and accept those above the threshold.

    Suggestions and mappings always target the same resolved period.
    """
    period_row = resolve_period(db, period)
    suggestions = generate_suggestions(db, period_row.id)
    return get_mapping_applier().bulk_apply(
        db,
        suggestions,
        threshold=threshold,
        period=period_row.id,
        mode=mode,
    )


def get_mapping_statistics(
    db: Session, scope: Union[int, str] = LATEST_PERIOD
) -> MappingStatistics:
    """Statistics for a period id, ``"latest"`` or ``"all"``."""
    return MappingStatisticsService(db).get(scope)
