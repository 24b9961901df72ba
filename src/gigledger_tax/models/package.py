"""The canonical tax export package.

A TaxExportPackage is built once per export request and is the single
source of truth for every renderer. All amounts in it are already rounded
to cents; renderers format them but never recompute or re-round them.
"""

import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..schedule_c import ScheduleCLine
from .validation import ValidationIssue

SCHEMA_VERSION = "2026-01-26.1"

ZERO = Decimal("0")


class _Frozen(BaseModel):
    model_config = {"frozen": True}


# =============================================================================
# METADATA
# =============================================================================

class RoundingPolicy(_Frozen):
    """How amounts in the package were rounded."""
    mode: Literal["half_away_from_zero"] = "half_away_from_zero"
    precision: Literal[2] = 2


class ExportMetadata(_Frozen):
    """Run-level facts about the export."""

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "tax_year": 2025,
                    "date_start": "2025-01-01",
                    "date_end": "2025-12-31",
                    "created_at": "2026-01-15T18:30:00Z",
                    "timezone": "America/New_York",
                    "basis": "cash",
                    "currency": "USD",
                }
            ]
        },
    }

    tax_year: int = Field(ge=2000, le=2100, description="Tax year being exported")
    date_start: dt.date = Field(description="First day included (inclusive)")
    date_end: dt.date = Field(description="Last day included (inclusive)")
    created_at: dt.datetime = Field(description="When the package was assembled (UTC)")
    timezone: str = Field(default="America/New_York")
    basis: Literal["cash"] = "cash"
    currency: Literal["USD"] = "USD"
    rounding: RoundingPolicy = Field(default_factory=RoundingPolicy)
    schema_version: str = SCHEMA_VERSION
    include_tips: bool = True
    include_fees_as_deduction: bool = True
    app_version: str = "1.0.0"


# =============================================================================
# SCHEDULE C
# =============================================================================

class OtherExpenseItem(_Frozen):
    """One itemized entry under line 27a."""
    name: str
    amount: Decimal


class ScheduleCSummary(_Frozen):
    """Schedule C totals. Expense totals are positive amounts."""

    gross_receipts: Decimal = ZERO
    returns_allowances: Decimal = ZERO
    cogs: Decimal = ZERO
    other_income: Decimal = ZERO
    expense_totals: dict[ScheduleCLine, Decimal] = Field(
        default_factory=dict,
        description="Total per expense line; only nonzero lines are present",
    )
    other_expenses_breakdown: tuple[OtherExpenseItem, ...] = ()
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    se_tax_basis: Decimal = Field(
        default=ZERO,
        description="Informational: net earnings subject to self-employment tax",
    )
    estimated_se_tax: Decimal = Field(
        default=ZERO,
        description="Informational: rough self-employment tax estimate",
    )
    notes: tuple[str, ...] = Field(
        default=(),
        description="How the totals were computed (mileage rate, meals limit, ...)",
    )

    def expense_total(self, line: ScheduleCLine) -> Decimal:
        return self.expense_totals.get(line, ZERO)


class ScheduleCLineItem(_Frozen):
    """One Schedule C line ready for entry into tax software.

    ``raw_signed_amount`` follows the ledger convention (expenses and
    reductions negative); ``amount_for_entry`` is what a person types into
    a form (always positive).
    """

    line: ScheduleCLine
    ref_number: int
    line_name: str
    description: str
    raw_signed_amount: Decimal
    amount_for_entry: Decimal
    notes: Optional[str] = None


# =============================================================================
# DETAIL ROWS
# =============================================================================

class IncomeRow(_Frozen):
    id: str
    source: Literal["gig"] = "gig"
    received_date: dt.date
    payer_id: Optional[str] = None
    payer_name: Optional[str] = None
    payer_email: Optional[str] = None
    payer_phone: Optional[str] = None
    description: str
    amount: Decimal = Field(description="Gross receipts counted for this row")
    fees: Decimal
    net_amount: Decimal
    currency: Literal["USD"] = "USD"
    related_gig_id: Optional[str] = None


class ExpenseRow(_Frozen):
    id: str
    date: dt.date
    merchant: Optional[str] = None
    description: str
    category: str
    line: ScheduleCLine
    amount: Decimal
    deductible_fraction: Decimal
    deductible_amount: Decimal
    currency: Literal["USD"] = "USD"
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    related_gig_id: Optional[str] = None
    potential_asset_review: bool = False
    potential_asset_reason: Optional[str] = None


class MileageRow(_Frozen):
    id: str
    date: dt.date
    origin: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    miles: Decimal
    rate: Decimal
    deduction_amount: Decimal
    currency: Literal["USD"] = "USD"
    is_estimate: bool = False
    notes: Optional[str] = None
    related_gig_id: Optional[str] = None


class PayerSummaryRow(_Frozen):
    """Per-payer rollup for 1099 reconciliation (not a tax-line total)."""
    payer_id: Optional[str] = None
    payer_name: Optional[str] = None
    payer_email: Optional[str] = None
    payer_phone: Optional[str] = None
    payments_count: int = Field(ge=0)
    gross_amount: Decimal
    fees_total: Decimal
    net_amount: Decimal
    first_payment_date: dt.date
    last_payment_date: dt.date
    notes: Optional[str] = None


class MileageSummary(_Frozen):
    tax_year: int
    total_business_miles: Decimal = ZERO
    standard_rate_used: Decimal
    mileage_deduction_amount: Decimal = ZERO
    entries_count: int = Field(default=0, ge=0)
    is_estimate_any: bool = False
    notes: str = ""


# =============================================================================
# PACKAGE
# =============================================================================

class TaxExportPackage(_Frozen):
    """Everything a renderer needs, and nothing it has to compute."""

    metadata: ExportMetadata
    schedule_c: ScheduleCSummary
    schedule_c_line_items: tuple[ScheduleCLineItem, ...] = ()
    income_rows: tuple[IncomeRow, ...] = ()
    expense_rows: tuple[ExpenseRow, ...] = ()
    mileage_rows: tuple[MileageRow, ...] = ()
    payer_summary_rows: tuple[PayerSummaryRow, ...] = ()
    mileage_summary: MileageSummary
    validation_warnings: tuple[ValidationIssue, ...] = Field(
        default=(),
        description="Warnings from pre-export validation, carried verbatim",
    )

    @property
    def tax_year(self) -> int:
        return self.metadata.tax_year
