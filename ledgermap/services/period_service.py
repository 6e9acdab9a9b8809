"""
Period resolution.

Mapping operations target the most recently created financial period unless
the caller names one. The default is spelled out as ``LATEST_PERIOD`` so it
is never inferred from a missing value.
"""
from typing import Optional, Union

import structlog
from sqlalchemy.orm import Session

from ledgermap.exceptions import PeriodNotFoundError, ValidationError
from ledgermap.models.period import FinancialPeriod

logger = structlog.get_logger(__name__)

LATEST_PERIOD = "latest"

PeriodSelector = Union[int, str]


def get_latest_period(db: Session) -> Optional[FinancialPeriod]:
    """Get the most recently created period, or None when there is none."""
    return (
        db.query(FinancialPeriod)
        .order_by(FinancialPeriod.created_at.desc(), FinancialPeriod.id.desc())
        .first()
    )


def resolve_period(db: Session, period: PeriodSelector = LATEST_PERIOD) -> FinancialPeriod:
    """
    Resolve a period selector to a period row.

    Args:
        db: Database session.
        period: A period id, a numeric string, or ``LATEST_PERIOD``.

    Raises:
        PeriodNotFoundError: If the period does not exist (or no period exists).
        ValidationError: If the selector is neither an id nor ``LATEST_PERIOD``.
    """
    if isinstance(period, str) and period.strip().lower() == LATEST_PERIOD:
        latest = get_latest_period(db)
        if latest is None:
            raise PeriodNotFoundError()
        logger.debug("Resolved latest period", period_id=latest.id)
        return latest

    period_id = parse_period_id(period)
    found = db.get(FinancialPeriod, period_id)
    if found is None:
        raise PeriodNotFoundError(period_id)
    return found


def parse_period_id(period: PeriodSelector) -> int:
    """Parse an explicit period id."""
    if isinstance(period, bool):
        raise ValidationError("Invalid period", errors=[f"period={period!r}"])
    if isinstance(period, int):
        return period
    if isinstance(period, str) and period.strip().isdigit():
        return int(period.strip())
    raise ValidationError(
        f"Period must be an id or '{LATEST_PERIOD}'",
        errors=[f"period={period!r}"],
    )
