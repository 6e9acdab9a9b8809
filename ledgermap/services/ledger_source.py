"""
Ledger entry source.

Read access to classified ledger entries, plus the re-ingestion hook the
upload pipeline calls to replace a period's entries.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Set

import structlog
from sqlalchemy.orm import Session

from ledgermap.config import get_settings
from ledgermap.exceptions import ValidationError
from ledgermap.models.ledger_entry import AccountType, LedgerEntry
from ledgermap.models.mapping import Mapping

logger = structlog.get_logger(__name__)


def get_period_entries(db: Session, period_id: int) -> List[LedgerEntry]:
    """Get a period's ledger entries in ingestion order."""
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.period_id == period_id)
        .order_by(LedgerEntry.id)
        .all()
    )


def get_mapped_ledger_names(db: Session, period_id: int) -> Set[str]:
    """Get the ledger names that already have a mapping in a period."""
    rows = db.query(Mapping.ledger_name).filter(Mapping.period_id == period_id).all()
    return {row.ledger_name for row in rows}


def parse_account_type(value: Any) -> Optional[AccountType]:
    """
    Parse an upstream account type.

    Unknown or missing values return None so the entry is kept but skipped
    by the suggestion generator.
    """
    if value is None:
        return None
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(str(value).strip().upper())
    except ValueError:
        return None


def replace_period_entries(
    db: Session,
    period_id: int,
    upload_id: Optional[str],
    records: Iterable[Dict[str, Any]],
) -> int:
    """
    Replace every ledger entry of a period with a new batch.

    Args:
        db: Database session.
        period_id: Period being re-ingested.
        upload_id: Ingestion batch identifier.
        records: Dicts with ledger_name, account_type, account_category,
            closing_balance and source_confidence.

    Returns:
        Number of entries written.

    Raises:
        ValidationError: If a record has no ledger name or an unreadable number.
    """
    settings = get_settings()
    entries: List[LedgerEntry] = []
    errors: List[str] = []

    for index, record in enumerate(records):
        name = (record.get("ledger_name") or "").strip()
        if not name:
            errors.append(f"row {index}: ledger_name is required")
            continue

        try:
            balance = Decimal(str(record.get("closing_balance", 0) or 0))
            confidence = float(record.get("source_confidence", 0.0) or 0.0)
        except (InvalidOperation, TypeError, ValueError):
            errors.append(f"row {index}: invalid number")
            continue

        entries.append(LedgerEntry(
            ledger_name=name,
            account_type=parse_account_type(record.get("account_type")),
            account_category=record.get("account_category"),
            closing_balance=balance,
            source_confidence=max(0.0, min(confidence, 1.0)),
            period_id=period_id,
            upload_id=upload_id,
        ))

    if errors:
        raise ValidationError("Invalid ledger entries", errors=errors)

    deleted = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.period_id == period_id)
        .delete(synchronize_session=False)
    )
    db.add_all(entries)
    db.commit()

    low_confidence = sum(
        1 for e in entries if e.source_confidence < settings.min_source_confidence
    )
    logger.info(
        "Period entries replaced",
        period_id=period_id,
        upload_id=upload_id,
        deleted=deleted,
        inserted=len(entries),
        low_confidence=low_confidence,
    )
    return len(entries)
