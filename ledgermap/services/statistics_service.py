"""
Mapping statistics service.

Read-only completion metrics: how many distinct ledger names have a mapping.

Scopes:
- period: one period's entries against that period's mappings
- latest: the period scope applied to the most recently created period
- global: every period's entries against mappings from any period
"""
import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

import structlog
from sqlalchemy import and_, distinct, func, select
from sqlalchemy.orm import Session

from ledgermap.models.ledger_entry import LedgerEntry
from ledgermap.models.mapping import Mapping
from ledgermap.services.period_service import LATEST_PERIOD, get_latest_period, resolve_period

logger = structlog.get_logger(__name__)

GLOBAL_SCOPE = "all"


class StatisticsScope(str, enum.Enum):
    """Which entries and mappings the statistics cover."""

    PERIOD = "period"
    LATEST = "latest"
    GLOBAL = "global"


@dataclass
class MappingStatistics:
    """Mapping completeness figures."""

    total_accounts: int
    mapped_accounts: int
    completion_percentage: float
    scope: StatisticsScope
    period_id: Optional[int] = None

    @property
    def unmapped_accounts(self) -> int:
        return self.total_accounts - self.mapped_accounts


def completion_percentage(mapped: int, total: int) -> float:
    """Percentage rounded half-up to two decimals; 0 when there is nothing to map."""
    if total <= 0:
        return 0.0
    ratio = Decimal(mapped) / Decimal(total) * 100
    return float(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class MappingStatisticsService:
    """Service for mapping completion statistics."""

    def __init__(self, db: Session):
        self.db = db

    def for_period(self, period_id: int) -> MappingStatistics:
        """
        Statistics for one period.

        Args:
            period_id: Period whose entries and mappings are counted.
        """
        total = (
            self.db.query(func.count(distinct(LedgerEntry.ledger_name)))
            .filter(LedgerEntry.period_id == period_id)
            .scalar()
        ) or 0

        mapped = (
            self.db.query(func.count(distinct(LedgerEntry.ledger_name)))
            .join(
                Mapping,
                and_(
                    Mapping.ledger_name == LedgerEntry.ledger_name,
                    Mapping.period_id == LedgerEntry.period_id,
                ),
            )
            .filter(LedgerEntry.period_id == period_id)
            .scalar()
        ) or 0

        return self._build(total, mapped, StatisticsScope.PERIOD, period_id)

    def for_latest_period(self) -> MappingStatistics:
        """Statistics for the most recently created period (zeros if none exists)."""
        latest = get_latest_period(self.db)
        if latest is None:
            return self._build(0, 0, StatisticsScope.LATEST, None)

        stats = self.for_period(latest.id)
        stats.scope = StatisticsScope.LATEST
        return stats

    def global_stats(self) -> MappingStatistics:
        """Statistics across every period."""
        total = self.db.query(func.count(distinct(LedgerEntry.ledger_name))).scalar() or 0

        mapped = (
            self.db.query(func.count(distinct(LedgerEntry.ledger_name)))
            .filter(LedgerEntry.ledger_name.in_(select(Mapping.ledger_name)))
            .scalar()
        ) or 0

        return self._build(total, mapped, StatisticsScope.GLOBAL, None)

    def get(self, selector: Union[int, str] = LATEST_PERIOD) -> MappingStatistics:
        """
        Dispatch on a selector: a period id, ``"latest"`` or ``"all"``.

        Raises:
            PeriodNotFoundError: If an explicit period id does not exist.
        """
        if isinstance(selector, str):
            normalized = selector.strip().lower()
            if normalized == LATEST_PERIOD:
                return self.for_latest_period()
            if normalized == GLOBAL_SCOPE:
                return self.global_stats()
        # An explicit id must name an existing period
        return self.for_period(resolve_period(self.db, selector).id)

    def _build(
        self,
        total: int,
        mapped: int,
        scope: StatisticsScope,
        period_id: Optional[int],
    ) -> MappingStatistics:
        stats = MappingStatistics(
            total_accounts=int(total),
            mapped_accounts=int(mapped),
            completion_percentage=completion_percentage(mapped, total),
            scope=scope,
            period_id=period_id,
        )
        logger.debug(
            "Mapping statistics computed",
            scope=scope.value,
            period_id=period_id,
            total=stats.total_accounts,
            mapped=stats.mapped_accounts,
        )
        return stats
