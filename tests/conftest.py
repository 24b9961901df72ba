"""Shared fixtures for the tax export tests."""

import datetime as dt
from decimal import Decimal

import pytest

from gigledger_tax import ExportRequest, RawExportData, TaxExportEngine
from gigledger_tax.config import ExportSettings, GigLedgerConfig

CREATED_AT = dt.datetime(2026, 1, 15, 18, 30, tzinfo=dt.timezone.utc)


@pytest.fixture
def request_2025() -> ExportRequest:
    """Full-year 2025 request with a fixed mileage rate."""
    return ExportRequest(tax_year=2025, standard_mileage_rate=Decimal("0.67"))


@pytest.fixture
def engine() -> TaxExportEngine:
    """Engine with default settings, independent of the environment."""
    return TaxExportEngine(GigLedgerConfig(env="test", export=ExportSettings()))


@pytest.fixture
def payers() -> list[dict]:
    return [
        {
            "id": "payer-1",
            "name": "Blue Note Club",
            "email": "booking@bluenote.example",
            "tax_id_hint": "***-**-1234",
        },
    ]


@pytest.fixture
def basic_raw(payers: list[dict]) -> RawExportData:
    """One paid gig with tips and fees, one meals expense, no mileage."""
    return RawExportData(
        gigs=[
            {
                "id": "gig-1",
                "date": "2025-03-14",
                "title": "Friday Jazz Set",
                "payer_id": "payer-1",
                "gross_amount": "1000",
                "tips": "100",
                "fees": "50",
                "paid": True,
            },
        ],
        expenses=[
            {
                "id": "exp-1",
                "date": "2025-03-14",
                "category": "Meals & Entertainment",
                "description": "Band dinner",
                "amount": "80",
            },
        ],
        payers=payers,
    )
