"""Tests for the record normalizer."""

import datetime as dt
from decimal import Decimal

import pytest

from gigledger_tax.normalizer import RawExportData, RecordNormalizer, parse_date


@pytest.fixture
def normalizer() -> RecordNormalizer:
    return RecordNormalizer()


class TestParseDate:
    """Test suite for parse_date()."""

    def test_iso_date(self):
        assert parse_date("2025-03-14") == dt.date(2025, 3, 14)

    def test_date_objects_pass_through(self):
        assert parse_date(dt.date(2025, 1, 2)) == dt.date(2025, 1, 2)
        assert parse_date(dt.datetime(2025, 1, 2, 9, 30)) == dt.date(2025, 1, 2)

    @pytest.mark.parametrize("value", ["03/14/2025", "2025-3-14", "2025-02-30", "", None, 20250314])
    def test_rejects_anything_else(self, value):
        assert parse_date(value) is None


class TestRecordNormalizer:
    """Test suite for RecordNormalizer."""

    def test_rows_are_never_dropped(self, normalizer: RecordNormalizer):
        """Broken rows survive normalization so they can be reported."""
        raw = RawExportData(
            gigs=[{"id": "g1", "date": "not-a-date", "gross_amount": "lots"}],
            expenses=[{"id": "e1", "amount": "-10"}],
            mileage=[{"id": "m1", "miles": "far"}],
        )

        records = normalizer.normalize(raw)

        assert len(records.income) == 1
        assert len(records.expenses) == 1
        assert len(records.mileage) == 1

        gig = records.income[0]
        assert gig.date is None
        assert gig.date_text == "not-a-date"
        assert gig.gross_amount is None
        assert records.expenses[0].amount == Decimal("-10")
        assert records.mileage[0].miles is None

    def test_missing_optional_amounts_default_to_zero(self, normalizer: RecordNormalizer):
        records = normalizer.normalize(
            RawExportData(gigs=[{"id": "g1", "date": "2025-01-05", "gross_amount": 200}])
        )
        gig = records.income[0]

        assert gig.gross_amount == Decimal("200")
        assert gig.tips == Decimal("0")
        assert gig.fees == Decimal("0")
        assert gig.paid is True

    def test_float_amounts_keep_their_decimal_text(self, normalizer: RecordNormalizer):
        records = normalizer.normalize(
            RawExportData(expenses=[{"id": "e1", "date": "2025-01-05", "category": "Supplies",
                                     "amount": 0.1}])
        )
        assert records.expenses[0].amount == Decimal("0.1")

    def test_missing_ids_are_deterministic(self, normalizer: RecordNormalizer):
        raw = RawExportData(mileage=[{"date": "2025-01-01", "miles": 5},
                                     {"date": "2025-01-02", "miles": 6}])

        first = normalizer.normalize(raw)
        second = normalizer.normalize(raw)

        assert [t.id for t in first.mileage] == ["mileage-0", "mileage-1"]
        assert first == second

    def test_blank_strings_become_none(self, normalizer: RecordNormalizer):
        records = normalizer.normalize(
            RawExportData(expenses=[{"id": "e1", "date": "2025-01-05", "category": "  ",
                                     "merchant": "", "amount": "5"}])
        )
        expense = records.expenses[0]

        assert expense.category is None
        assert expense.merchant is None

    def test_payer_details_come_from_payer_table(self, normalizer: RecordNormalizer, payers):
        records = normalizer.normalize(
            RawExportData(
                gigs=[{"id": "g1", "date": "2025-01-05", "gross_amount": 100,
                       "payer_id": "payer-1"}],
                payers=payers,
            )
        )
        gig = records.income[0]

        assert gig.payer_name == "Blue Note Club"
        assert gig.payer_email == "booking@bluenote.example"
        assert gig.payer_tax_id_hint == "***-**-1234"

    def test_row_payer_name_wins(self, normalizer: RecordNormalizer, payers):
        records = normalizer.normalize(
            RawExportData(
                gigs=[{"id": "g1", "date": "2025-01-05", "gross_amount": 100,
                       "payer_id": "payer-1", "payer_name": "Blue Note NYC"}],
                payers=payers,
            )
        )
        assert records.income[0].payer_name == "Blue Note NYC"

    def test_legacy_field_names(self, normalizer: RecordNormalizer):
        records = normalizer.normalize(
            RawExportData(
                expenses=[{"id": "e1", "date": "2025-01-05", "category": "Meals",
                           "amount": 40, "vendor": "Diner", "gig_id": "g1",
                           "meals_percent_allowed": "0.5"}],
                mileage=[{"id": "m1", "date": "2025-01-05", "business_miles": "12.5"}],
            )
        )
        expense = records.expenses[0]

        assert expense.merchant == "Diner"
        assert expense.related_gig_id == "g1"
        assert expense.deductible_fraction_override == Decimal("0.5")
        assert records.mileage[0].miles == Decimal("12.5")

    @pytest.mark.parametrize("value,expected", [("false", False), ("no", False), (0, False),
                                                ("true", True), (None, True)])
    def test_paid_flag(self, normalizer: RecordNormalizer, value, expected):
        records = normalizer.normalize(
            RawExportData(gigs=[{"id": "g1", "date": "2025-01-05", "paid": value}])
        )
        assert records.income[0].paid is expected

    def test_currency_is_upper_cased(self, normalizer: RecordNormalizer):
        records = normalizer.normalize(
            RawExportData(gigs=[{"id": "g1", "date": "2025-01-05", "currency": "usd"}])
        )
        assert records.income[0].currency == "USD"
