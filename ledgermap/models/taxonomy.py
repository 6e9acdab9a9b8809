"""
TaxonomyItem model: the standardized reporting line items.
"""
import enum

from sqlalchemy import Boolean, Column, Enum, Integer, String, UniqueConstraint

from ledgermap.database import Base


class ReportType(enum.Enum):
    """Financial statement a taxonomy item belongs to."""

    BALANCE_SHEET = "BalanceSheet"
    PROFIT_AND_LOSS = "ProfitAndLoss"


class TaxonomyItem(Base):
    """Standardized financial-statement line item (e.g., "Trade Payables")."""

    __tablename__ = "taxonomy_items"
    __table_args__ = (
        UniqueConstraint(
            "item_name", "report_section", "report_type",
            name="uq_taxonomy_items_name_section_type",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_name = Column(String(255), nullable=False)
    report_section = Column(String(100), nullable=False)
    report_sub_section = Column(String(100), nullable=True)
    report_type = Column(
        Enum(ReportType, values_callable=lambda members: [m.value for m in members]),
        nullable=False,
    )
    is_credit_positive = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<TaxonomyItem(id={self.id}, item_name='{self.item_name}', section='{self.report_section}')>"
