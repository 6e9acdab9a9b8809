"""
Taxonomy service for loading and querying standardized reporting line items.

Reads the taxonomy reference file (YAML), keeps it in memory, and syncs it
into the ``taxonomy_items`` table.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog
import yaml
from sqlalchemy.orm import Session

from ledgermap.config import get_settings
from ledgermap.exceptions import TaxonomyError, TaxonomyItemNotFoundError
from ledgermap.models.taxonomy import ReportType, TaxonomyItem

logger = structlog.get_logger(__name__)

# YAML top-level key -> report type
STATEMENT_KEYS = {
    "balance_sheet": ReportType.BALANCE_SHEET,
    "profit_and_loss": ReportType.PROFIT_AND_LOSS,
}

TaxonomyKey = Tuple[str, str, ReportType]


@dataclass(frozen=True)
class TaxonomyDefinition:
    """A taxonomy item as declared in the reference file."""

    item_name: str
    report_section: str
    report_type: ReportType
    report_sub_section: Optional[str] = None
    is_credit_positive: bool = False
    display_order: int = 0

    @property
    def key(self) -> TaxonomyKey:
        """Natural key the table is unique on."""
        return (self.item_name, self.report_section, self.report_type)


class TaxonomyService:
    """
    Service for managing the taxonomy registry.

    Loads definitions from YAML and provides listing and persistence helpers.
    """

    def __init__(self, taxonomy_path: Optional[Path] = None):
        """
        Initialize taxonomy service.

        Args:
            taxonomy_path: Path to taxonomy YAML file.
        """
        self._definitions: Dict[TaxonomyKey, TaxonomyDefinition] = {}

        if taxonomy_path is None:
            taxonomy_path = get_settings().taxonomy_path

        self._path = Path(taxonomy_path)
        self._load_taxonomy(self._path)

    def _load_taxonomy(self, path: Path) -> None:
        """
        Load taxonomy from YAML file.

        A missing file leaves the registry empty; a malformed one raises.
        """
        logger.info("Loading taxonomy", path=str(path))

        if not path.exists():
            logger.warning("Taxonomy file not found", path=str(path))
            return

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse taxonomy", path=str(path), error=str(e))
            raise TaxonomyError(f"Invalid taxonomy file: {path}") from e

        for statement_key, report_type in STATEMENT_KEYS.items():
            statement_data = data.get(statement_key)
            if not isinstance(statement_data, dict):
                continue
            self._process_items(statement_data.get("items", []), report_type)

        logger.info("Taxonomy loaded", total_items=len(self._definitions))

    def _process_items(self, items: List[Dict], report_type: ReportType) -> None:
        """Register the item dictionaries of one statement."""
        for item_data in items:
            if not isinstance(item_data, dict):
                continue
            if not item_data.get("item_name") or not item_data.get("report_section"):
                logger.warning("Skipping incomplete taxonomy item", item=item_data)
                continue

            definition = TaxonomyDefinition(
                item_name=str(item_data["item_name"]).strip(),
                report_section=str(item_data["report_section"]).strip(),
                report_type=report_type,
                report_sub_section=item_data.get("report_sub_section"),
                is_credit_positive=bool(item_data.get("is_credit_positive", False)),
                display_order=int(item_data.get("display_order", 0)),
            )

            if definition.key in self._definitions:
                raise TaxonomyError(
                    "Duplicate taxonomy item",
                    details={
                        "item_name": definition.item_name,
                        "report_section": definition.report_section,
                        "report_type": report_type.value,
                    },
                )

            self._definitions[definition.key] = definition

    def get_definitions(self) -> List[TaxonomyDefinition]:
        """Get all definitions ordered by display order."""
        return sorted(self._definitions.values(), key=lambda d: d.display_order)

    @property
    def item_count(self) -> int:
        """Get total number of definitions."""
        return len(self._definitions)

    def sync(self, db: Session) -> int:
        """
        Upsert definitions into the taxonomy table.

        Existing rows are matched on their natural key and updated in place,
        so item ids (and the mappings pointing at them) stay stable.

        Returns:
            Number of rows inserted.
        """
        existing = {
            (row.item_name, row.report_section, row.report_type): row
            for row in db.query(TaxonomyItem).all()
        }

        inserted = 0
        for definition in self._definitions.values():
            row = existing.get(definition.key)
            if row is None:
                db.add(TaxonomyItem(
                    item_name=definition.item_name,
                    report_section=definition.report_section,
                    report_sub_section=definition.report_sub_section,
                    report_type=definition.report_type,
                    is_credit_positive=definition.is_credit_positive,
                    display_order=definition.display_order,
                ))
                inserted += 1
            else:
                row.report_sub_section = definition.report_sub_section
                row.is_credit_positive = definition.is_credit_positive
                row.display_order = definition.display_order

        db.commit()
        logger.info("Taxonomy synced", inserted=inserted, total=len(self._definitions))
        return inserted


def list_taxonomy_items(db: Session) -> List[TaxonomyItem]:
    """Get all taxonomy rows ordered by display order (ties by id)."""
    return (
        db.query(TaxonomyItem)
        .order_by(TaxonomyItem.display_order, TaxonomyItem.id)
        .all()
    )


def get_taxonomy_item(db: Session, item_id: int) -> TaxonomyItem:
    """
    Get a taxonomy row by id.

    Raises:
        TaxonomyItemNotFoundError: If no such item exists.
    """
    item = db.get(TaxonomyItem, item_id)
    if item is None:
        raise TaxonomyItemNotFoundError(item_id)
    return item


# Singleton instance
_taxonomy_instance: Optional[TaxonomyService] = None


def get_taxonomy_service() -> TaxonomyService:
    """Get singleton TaxonomyService instance."""
    global _taxonomy_instance
    if _taxonomy_instance is None:
        _taxonomy_instance = TaxonomyService()
    return _taxonomy_instance
