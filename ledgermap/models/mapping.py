"""
Mapping database model.

Stores the accepted association between a ledger name and a taxonomy item
for one financial period.
"""
import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ledgermap.database import Base


class MappingType(enum.Enum):
    """How a mapping was created."""

    AI_SUGGESTED = "ai_suggested"
    MANUAL = "manual"


class Mapping(Base):
    """
    Represents a persisted ledger name → taxonomy item mapping.

    At most one mapping exists per (ledger_name, period_id); the unique
    constraint is what makes concurrent applies safe.
    """

    __tablename__ = "mappings"
    __table_args__ = (
        UniqueConstraint("ledger_name", "period_id", name="uq_mappings_ledger_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_name = Column(String(500), nullable=False)
    taxonomy_item_id = Column(
        Integer,
        ForeignKey("taxonomy_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    period_id = Column(
        Integer,
        ForeignKey("financial_periods.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    mapping_type = Column(
        Enum(MappingType, values_callable=lambda members: [m.value for m in members]),
        default=MappingType.MANUAL,
        nullable=False,
    )
    confidence_score = Column(Float, nullable=True)  # None for manual mappings

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    period = relationship("FinancialPeriod", back_populates="mappings")
    taxonomy_item = relationship("TaxonomyItem")

    def __repr__(self) -> str:
        return f"<Mapping(id={self.id}, ledger_name='{self.ledger_name}', period_id={self.period_id})>"
