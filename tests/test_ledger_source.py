"""
Tests for ledger entry access and period resolution.
"""
from datetime import datetime

import pytest

from ledgermap.exceptions import PeriodNotFoundError, ValidationError
from ledgermap.models.ledger_entry import AccountType, LedgerEntry
from ledgermap.services.ledger_source import (
    get_mapped_ledger_names,
    get_period_entries,
    parse_account_type,
    replace_period_entries,
)
from ledgermap.services.mapping_applier import MappingApplier
from ledgermap.services.period_service import (
    LATEST_PERIOD,
    get_latest_period,
    parse_period_id,
    resolve_period,
)


class TestPeriodResolution:
    """Tests for period selectors."""

    def test_latest_is_most_recently_created(self, db_session, make_period):
        make_period(created_at=datetime(2025, 6, 1))
        newest = make_period(created_at=datetime(2025, 9, 1))
        make_period(created_at=datetime(2025, 3, 1))

        assert get_latest_period(db_session).id == newest.id
        assert resolve_period(db_session, LATEST_PERIOD).id == newest.id

    def test_same_timestamp_prefers_higher_id(self, db_session, make_period):
        stamp = datetime(2025, 6, 1)
        make_period(created_at=stamp)
        second = make_period(created_at=stamp)

        assert get_latest_period(db_session).id == second.id

    def test_no_periods(self, db_session):
        assert get_latest_period(db_session) is None

        with pytest.raises(PeriodNotFoundError) as exc_info:
            resolve_period(db_session)

        assert exc_info.value.message == "No financial period found"

    def test_explicit_id(self, db_session, make_period):
        period = make_period()

        assert resolve_period(db_session, period.id).id == period.id
        assert resolve_period(db_session, str(period.id)).id == period.id
        assert resolve_period(db_session, "Latest").id == period.id

    def test_unknown_id(self, db_session, make_period):
        make_period()

        with pytest.raises(PeriodNotFoundError) as exc_info:
            resolve_period(db_session, 404)

        assert exc_info.value.details["period_id"] == 404

    @pytest.mark.parametrize("selector", [None, "", "current", True, 1.5])
    def test_invalid_selector(self, selector):
        with pytest.raises(ValidationError):
            parse_period_id(selector)


class TestLedgerSource:
    """Tests for ledger entry reads and re-ingestion."""

    def test_parse_account_type(self):
        assert parse_account_type("liabilities") == AccountType.LIABILITIES
        assert parse_account_type(AccountType.EQUITY) == AccountType.EQUITY
        assert parse_account_type("Fixed Assets") is None
        assert parse_account_type(None) is None

    def test_entries_in_ingestion_order(self, db_session, make_period, make_entry):
        period = make_period()
        other = make_period()
        make_entry(period, "B Ledger")
        make_entry(other, "Elsewhere")
        make_entry(period, "A Ledger")

        names = [e.ledger_name for e in get_period_entries(db_session, period.id)]

        assert names == ["B Ledger", "A Ledger"]

    def test_mapped_names(self, db_session, make_period, taxonomy_items):
        period = make_period()
        other = make_period()
        applier = MappingApplier()
        applier.apply_one(db_session, "Cash in Hand", taxonomy_items[1].id, period=period.id)
        applier.apply_one(db_session, "Bank Overdraft", taxonomy_items[4].id, period=other.id)

        assert get_mapped_ledger_names(db_session, period.id) == {"Cash in Hand"}

    def test_replace_period_entries(self, db_session, make_period, make_entry):
        period = make_period()
        make_entry(period, "Stale Ledger")

        written = replace_period_entries(db_session, period.id, "upload-2", [
            {
                "ledger_name": " Cash in Hand ",
                "account_type": "assets",
                "account_category": "CASH",
                "closing_balance": "1250.50",
                "source_confidence": 0.95,
            },
            {
                "ledger_name": "Suspense",
                "account_type": "unknown",
                "source_confidence": 0.4,
            },
        ])

        entries = get_period_entries(db_session, period.id)
        assert written == 2
        assert [e.ledger_name for e in entries] == ["Cash in Hand", "Suspense"]
        assert entries[0].account_type == AccountType.ASSETS
        assert float(entries[0].closing_balance) == pytest.approx(1250.50)
        assert entries[1].account_type is None
        assert all(e.upload_id == "upload-2" for e in entries)

    def test_replace_rejects_bad_rows(self, db_session, make_period, make_entry):
        period = make_period()
        make_entry(period, "Kept Ledger")

        with pytest.raises(ValidationError) as exc_info:
            replace_period_entries(db_session, period.id, "upload-3", [
                {"ledger_name": ""},
                {"ledger_name": "Bad Number", "closing_balance": "12,00x"},
            ])

        assert len(exc_info.value.details["errors"]) == 2
        assert db_session.query(LedgerEntry).count() == 1
