"""Models package."""
from ledgermap.models.period import FinancialPeriod
from ledgermap.models.ledger_entry import AccountType, LedgerEntry
from ledgermap.models.taxonomy import ReportType, TaxonomyItem
from ledgermap.models.mapping import Mapping, MappingType

__all__ = [
    "FinancialPeriod",
    "AccountType", "LedgerEntry",
    "ReportType", "TaxonomyItem",
    "Mapping", "MappingType",
]
