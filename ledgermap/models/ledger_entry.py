"""
LedgerEntry model for classified trial balance lines.

Rows are written by the ingestion collaborator; re-ingesting a period
replaces all of its entries.
"""
import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ledgermap.database import Base


class AccountType(enum.Enum):
    """Top-level account classification assigned by document analysis."""

    ASSETS = "ASSETS"
    LIABILITIES = "LIABILITIES"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSES = "EXPENSES"
    OTHER = "OTHER"


class LedgerEntry(Base):
    """
    SQLAlchemy model for one extracted ledger line.

    Attributes:
        id: Integer identifier.
        ledger_name: Free-text account name as printed in the ledger.
        account_type: Top-level classification, missing for malformed rows.
        account_category: Free-text sub-classification (e.g., "CASH", "LOANS").
        closing_balance: Signed closing balance.
        source_confidence: Extraction confidence from upstream (0-1).
        period_id: Owning financial period.
        upload_id: Ingestion batch identifier.
    """

    __tablename__ = "ledger_entries"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    ledger_name: str = Column(String(500), nullable=False, index=True)
    account_type: Optional[AccountType] = Column(Enum(AccountType), nullable=True)
    account_category: Optional[str] = Column(String(255), nullable=True)
    closing_balance: Decimal = Column(Numeric(precision=20, scale=4), nullable=False, default=0)
    source_confidence: float = Column(Float, nullable=False, default=0.0)
    period_id: int = Column(
        Integer,
        ForeignKey("financial_periods.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    upload_id: Optional[str] = Column(String(64), nullable=True, index=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    period = relationship("FinancialPeriod", back_populates="ledger_entries")

    def __repr__(self) -> str:
        return f"<LedgerEntry(id={self.id}, ledger_name='{self.ledger_name}')>"
