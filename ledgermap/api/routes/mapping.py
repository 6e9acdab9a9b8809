"""
Mapping API routes.

Provides endpoints for reviewing suggestions, applying mappings singly or in
bulk, and reading mapping completion statistics.
"""
from typing import List, Optional, Union

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ledgermap.database import get_db
from ledgermap.models.mapping import Mapping, MappingType
from ledgermap.services.mapping_applier import BulkApplyMode, delete_mapping, list_mappings
from ledgermap.services.mapping_service import (
    apply_mapping,
    bulk_apply_mappings,
    generate_suggestions,
    get_mapping_statistics,
)
from ledgermap.services.period_service import LATEST_PERIOD, resolve_period
from ledgermap.services.suggestion_service import ConfidenceBand, Suggestion

logger = structlog.get_logger(__name__)

router = APIRouter()


# Request/Response Models
class SuggestionResponse(BaseModel):
    """Response model for a mapping suggestion."""

    ledger_name: str
    period_id: int
    suggested_taxonomy_item_id: int
    suggested_item_name: str
    report_section: str
    match_score: float
    confidence: float
    confidence_band: str
    reasoning: str
    account_type: str
    account_category: Optional[str]
    source_confidence: float


class SuggestionListResponse(BaseModel):
    """Response model for a period's suggestions."""

    period_id: int
    total: int
    suggestions: List[SuggestionResponse]


class CreateMappingRequest(BaseModel):
    """Request model for applying one mapping."""

    ledger_name: str = Field(..., min_length=1, max_length=500)
    taxonomy_item_id: int
    period: Union[int, str] = LATEST_PERIOD
    mapping_type: MappingType = MappingType.MANUAL
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class MappingResponse(BaseModel):
    """Response model for a persisted mapping."""

    id: int
    ledger_name: str
    taxonomy_item_id: int
    period_id: int
    mapping_type: str
    confidence_score: Optional[float]
    created_at: str


class BulkApplyRequest(BaseModel):
    """Request model for bulk apply."""

    period: Union[int, str] = LATEST_PERIOD
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    mode: Optional[BulkApplyMode] = None


class FailedMappingResponse(BaseModel):
    """A bulk-apply row that was not written."""

    ledger_name: str
    reason: str


class BulkApplyResponse(BaseModel):
    """Response model for bulk apply."""

    period_id: int
    threshold: float
    mode: str
    applied: int
    skipped: int
    failed: List[FailedMappingResponse]


class StatisticsResponse(BaseModel):
    """Response model for mapping statistics."""

    scope: str
    period_id: Optional[int]
    total_accounts: int
    mapped_accounts: int
    unmapped_accounts: int
    completion_percentage: float


def _suggestion_response(suggestion: Suggestion) -> SuggestionResponse:
    return SuggestionResponse(
        ledger_name=suggestion.ledger_name,
        period_id=suggestion.period_id,
        suggested_taxonomy_item_id=suggestion.suggested_taxonomy_item_id,
        suggested_item_name=suggestion.suggested_item_name,
        report_section=suggestion.report_section,
        match_score=suggestion.match_score,
        confidence=suggestion.confidence,
        confidence_band=suggestion.band.value,
        reasoning=suggestion.reasoning,
        account_type=suggestion.account_type,
        account_category=suggestion.account_category,
        source_confidence=suggestion.source_confidence,
    )


def _mapping_response(mapping: Mapping) -> MappingResponse:
    return MappingResponse(
        id=mapping.id,
        ledger_name=mapping.ledger_name,
        taxonomy_item_id=mapping.taxonomy_item_id,
        period_id=mapping.period_id,
        mapping_type=mapping.mapping_type.value,
        confidence_score=mapping.confidence_score,
        created_at=mapping.created_at.isoformat(),
    )


@router.get(
    "/periods/{period}/suggestions",
    response_model=SuggestionListResponse,
    summary="Get mapping suggestions",
    description="Suggest taxonomy items for the period's unmapped ledger names.",
)
async def get_suggestions(
    period: str,
    search: Optional[str] = Query(None, description="Ledger name contains"),
    band: Optional[ConfidenceBand] = Query(None, description="Confidence band"),
    account_type: Optional[str] = Query(None, description="Account type, e.g. ASSETS"),
    db: Session = Depends(get_db),
) -> SuggestionListResponse:
    """
    Get suggestions for a period.

    Args:
        period: Period id or ``latest``.
        search: Optional ledger name filter.
        band: Optional confidence band filter.
        account_type: Optional account type filter.
        db: Database session.
    """
    period_row = resolve_period(db, period)
    suggestions = generate_suggestions(
        db,
        period_row.id,
        search=search,
        band=band,
        account_type=account_type,
    )

    return SuggestionListResponse(
        period_id=period_row.id,
        total=len(suggestions),
        suggestions=[_suggestion_response(s) for s in suggestions],
    )


@router.post(
    "/mappings",
    response_model=MappingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply a mapping",
)
async def create_mapping(
    request: CreateMappingRequest,
    db: Session = Depends(get_db),
) -> MappingResponse:
    """Map one ledger name to a taxonomy item. Returns 409 if already mapped."""
    logger.info(
        "Applying mapping",
        ledger_name=request.ledger_name,
        taxonomy_item_id=request.taxonomy_item_id,
    )

    mapping = apply_mapping(
        db,
        ledger_name=request.ledger_name,
        taxonomy_item_id=request.taxonomy_item_id,
        period=request.period,
        mapping_type=request.mapping_type,
        confidence_score=request.confidence_score,
    )
    return _mapping_response(mapping)


@router.post(
    "/mappings/bulk",
    response_model=BulkApplyResponse,
    summary="Bulk apply suggestions",
    description="Apply every suggestion whose confidence meets the threshold.",
)
async def bulk_apply(
    request: BulkApplyRequest,
    db: Session = Depends(get_db),
) -> BulkApplyResponse:
    """Bulk apply high-confidence suggestions for a period."""
    result = bulk_apply_mappings(
        db,
        period=request.period,
        threshold=request.threshold,
        mode=request.mode,
    )

    return BulkApplyResponse(
        period_id=result.period_id,
        threshold=result.threshold,
        mode=result.mode.value,
        applied=result.applied,
        skipped=result.skipped,
        failed=[
            FailedMappingResponse(ledger_name=f.ledger_name, reason=f.reason)
            for f in result.failed
        ],
    )


@router.get(
    "/mappings/statistics",
    response_model=StatisticsResponse,
    summary="Get mapping statistics",
)
async def get_statistics(
    period: str = Query(LATEST_PERIOD, description="Period id, 'latest' or 'all'"),
    db: Session = Depends(get_db),
) -> StatisticsResponse:
    """Get mapping completion statistics."""
    stats = get_mapping_statistics(db, period)

    return StatisticsResponse(
        scope=stats.scope.value,
        period_id=stats.period_id,
        total_accounts=stats.total_accounts,
        mapped_accounts=stats.mapped_accounts,
        unmapped_accounts=stats.unmapped_accounts,
        completion_percentage=stats.completion_percentage,
    )


@router.get(
    "/periods/{period}/mappings",
    response_model=List[MappingResponse],
    summary="List mappings",
)
async def get_period_mappings(
    period: str,
    db: Session = Depends(get_db),
) -> List[MappingResponse]:
    """List a period's mappings ordered by ledger name."""
    period_row = resolve_period(db, period)
    return [_mapping_response(m) for m in list_mappings(db, period_row.id)]


@router.delete(
    "/mappings/{mapping_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a mapping",
)
async def remove_mapping(
    mapping_id: int,
    db: Session = Depends(get_db),
) -> None:
    """Delete a mapping so the ledger name shows up in suggestions again."""
    delete_mapping(db, mapping_id)
