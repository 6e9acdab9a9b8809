"""
FinancialPeriod model.

Periods are created by the upload lifecycle; the mapping engine only reads
them and uses the most recently created one as its default target.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Column, Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ledgermap.database import Base


class FinancialPeriod(Base):
    """
    SQLAlchemy model for a reporting interval (e.g., a fiscal quarter).

    Attributes:
        id: Integer identifier.
        label: Display label such as "Q1 FY2025".
        year: Fiscal year.
        quarter: Fiscal quarter (1-4).
        quarter_end_date: Last day of the period.
        created_at: Creation timestamp, used to pick the latest period.
    """

    __tablename__ = "financial_periods"
    __table_args__ = (
        UniqueConstraint("year", "quarter", name="uq_financial_periods_year_quarter"),
    )

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    label: str = Column(String(100), nullable=False)
    year: Optional[int] = Column(Integer, nullable=True)
    quarter: Optional[int] = Column(Integer, nullable=True)
    quarter_end_date: Optional[date] = Column(Date, nullable=True)
    created_at: datetime = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    ledger_entries = relationship(
        "LedgerEntry",
        back_populates="period",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    mappings = relationship(
        "Mapping",
        back_populates="period",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<FinancialPeriod(id={self.id}, label='{self.label}')>"
