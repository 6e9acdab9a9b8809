"""
Pytest configuration and fixtures.
"""
import os

# Keep the app's own engine off the working directory during tests
os.environ.setdefault("LEDGERMAP_DATABASE_URL", "sqlite://")
os.environ.setdefault("LEDGERMAP_SEED_TAXONOMY_ON_STARTUP", "false")

from datetime import datetime, timedelta
from typing import Callable, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgermap.database import Base, get_db
from ledgermap.main import app
from ledgermap.models import (
    AccountType,
    FinancialPeriod,
    LedgerEntry,
    ReportType,
    TaxonomyItem,
)


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_period(db_session: Session) -> Callable[..., FinancialPeriod]:
    """Factory for periods; later calls get later creation timestamps."""
    base_time = datetime(2025, 1, 1)
    counter = {"n": 0}

    def _make(label: Optional[str] = None, created_at: Optional[datetime] = None) -> FinancialPeriod:
        counter["n"] += 1
        n = counter["n"]
        period = FinancialPeriod(
            label=label or f"Q{n} FY2025",
            year=2025,
            quarter=n,
            created_at=created_at or base_time + timedelta(days=n),
        )
        db_session.add(period)
        db_session.commit()
        db_session.refresh(period)
        return period

    return _make


@pytest.fixture
def make_entry(db_session: Session) -> Callable[..., LedgerEntry]:
    """Factory for ledger entries."""

    def _make(
        period: FinancialPeriod,
        ledger_name: str,
        account_type: Optional[AccountType] = AccountType.ASSETS,
        account_category: Optional[str] = None,
        source_confidence: float = 0.9,
        closing_balance: float = 0,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            ledger_name=ledger_name,
            account_type=account_type,
            account_category=account_category,
            source_confidence=source_confidence,
            closing_balance=closing_balance,
            period_id=period.id,
            upload_id="upload-1",
        )
        db_session.add(entry)
        db_session.commit()
        db_session.refresh(entry)
        return entry

    return _make


@pytest.fixture
def taxonomy_items(db_session: Session) -> List[TaxonomyItem]:
    """A small taxonomy covering both statements."""
    rows = [
        ("Property, Plant and Equipment", "Non-Current Assets", ReportType.BALANCE_SHEET, 101),
        ("Cash and Cash Equivalents", "Current Assets", ReportType.BALANCE_SHEET, 202),
        ("Trade Receivables", "Current Assets", ReportType.BALANCE_SHEET, 203),
        ("Borrowings", "Non-Current Liabilities", ReportType.BALANCE_SHEET, 401),
        ("Borrowings", "Current Liabilities", ReportType.BALANCE_SHEET, 501),
        ("Trade Payables", "Current Liabilities", ReportType.BALANCE_SHEET, 502),
        ("Revenue from Operations", "Revenue", ReportType.PROFIT_AND_LOSS, 601),
        ("Employee Benefit Expenses", "Expenses", ReportType.PROFIT_AND_LOSS, 703),
    ]
    items = [
        TaxonomyItem(
            item_name=name,
            report_section=section,
            report_type=report_type,
            display_order=order,
        )
        for name, section, report_type, order in rows
    ]
    db_session.add_all(items)
    db_session.commit()
    for item in items:
        db_session.refresh(item)
    return items


@pytest.fixture
def item_by_key(taxonomy_items: List[TaxonomyItem]) -> Callable[[str, str], TaxonomyItem]:
    """Look up a fixture taxonomy item by name and section."""

    def _lookup(item_name: str, report_section: str) -> TaxonomyItem:
        for item in taxonomy_items:
            if item.item_name == item_name and item.report_section == report_section:
                return item
        raise KeyError((item_name, report_section))

    return _lookup


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singleton instances before each test for proper isolation."""
    import ledgermap.services.mapping_applier as applier_module
    import ledgermap.services.matching_engine as engine_module
    import ledgermap.services.semantic_matcher as matcher_module
    import ledgermap.services.suggestion_service as suggestion_module
    import ledgermap.services.taxonomy_service as taxonomy_module

    modules_and_attrs = [
        (applier_module, "_applier_instance"),
        (engine_module, "_engine_instance"),
        (matcher_module, "_matcher_instance"),
        (suggestion_module, "_generator_instance"),
        (taxonomy_module, "_taxonomy_instance"),
    ]

    for module, attr in modules_and_attrs:
        setattr(module, attr, None)

    yield

    for module, attr in modules_and_attrs:
        setattr(module, attr, None)
