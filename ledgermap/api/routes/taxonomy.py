"""
Taxonomy API routes.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ledgermap.database import get_db
from ledgermap.services.taxonomy_service import list_taxonomy_items

router = APIRouter()


class TaxonomyItemResponse(BaseModel):
    """Response model for a taxonomy item."""

    id: int
    item_name: str
    report_section: str
    report_sub_section: Optional[str]
    report_type: str
    is_credit_positive: bool
    display_order: int


@router.get(
    "/taxonomy",
    response_model=List[TaxonomyItemResponse],
    summary="List taxonomy items",
)
async def get_taxonomy(db: Session = Depends(get_db)) -> List[TaxonomyItemResponse]:
    """List every taxonomy item in display order."""
    return [
        TaxonomyItemResponse(
            id=item.id,
            item_name=item.item_name,
            report_section=item.report_section,
            report_sub_section=item.report_sub_section,
            report_type=item.report_type.value,
            is_credit_positive=item.is_credit_positive,
            display_order=item.display_order,
        )
        for item in list_taxonomy_items(db)
    ]
