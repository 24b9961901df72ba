"""Normalized input records.

Raw rows from the data store arrive as loosely-typed dicts. The normalizer
turns each one into exactly one of the variants below, and everything
downstream works with these closed, immutable types.

Values that could not be parsed are kept as None (with the raw date text
preserved) so the validator can report them instead of the row vanishing.
"""

import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class _Record(BaseModel):
    model_config = {"frozen": True}

    id: str = Field(description="Stable identifier from the data store")


class _DatedRecord(_Record):
    date: Optional[dt.date] = Field(
        default=None,
        description="Calendar date, or None if missing or unparseable",
    )
    date_text: Optional[str] = Field(
        default=None,
        description="Date exactly as received, for error messages",
    )


class IncomeRecord(_DatedRecord):
    """A gig payment."""

    kind: Literal["income"] = "income"
    title: Optional[str] = None
    payer_id: Optional[str] = None
    payer_name: Optional[str] = None
    payer_email: Optional[str] = None
    payer_phone: Optional[str] = None
    payer_tax_id_hint: Optional[str] = Field(
        default=None,
        description="EIN/SSN last four or similar hint for 1099 matching",
    )
    gross_amount: Optional[Decimal] = Decimal("0")
    tips: Optional[Decimal] = Decimal("0")
    per_diem: Optional[Decimal] = Decimal("0")
    other_income: Optional[Decimal] = Decimal("0")
    fees: Optional[Decimal] = Decimal("0")
    paid: bool = True
    currency: str = "USD"
    city: Optional[str] = None
    state: Optional[str] = None
    notes: Optional[str] = None

    @property
    def display_title(self) -> str:
        """Title for reports, falling back to the gig location."""
        if self.title:
            return self.title
        location = " - ".join(part for part in (self.city, self.state) if part)
        return f"Gig - {location}" if location else "Gig"


class ExpenseRecord(_DatedRecord):
    """A business expense."""

    kind: Literal["expense"] = "expense"
    merchant: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = Field(
        default=None,
        description="Free-form category text as entered by the user",
    )
    amount: Optional[Decimal] = None
    deductible_fraction_override: Optional[Decimal] = Field(
        default=None,
        description="Deductible fraction recorded on the row (e.g. meals percent)",
    )
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    related_gig_id: Optional[str] = None
    currency: str = "USD"

    @property
    def display_description(self) -> str:
        return self.description or self.merchant or "Expense"


class MileageRecord(_DatedRecord):
    """A business trip."""

    kind: Literal["mileage"] = "mileage"
    origin: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    miles: Optional[Decimal] = None
    is_estimate: bool = False
    notes: Optional[str] = None
    related_gig_id: Optional[str] = None


class PayerRecord(_Record):
    """A client that pays for gigs."""

    kind: Literal["payer"] = "payer"
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    tax_id_hint: Optional[str] = None
    notes: Optional[str] = None


class NormalizedRecords(BaseModel):
    """All records for one export run, in input order."""

    model_config = {"frozen": True}

    income: tuple[IncomeRecord, ...] = ()
    expenses: tuple[ExpenseRecord, ...] = ()
    mileage: tuple[MileageRecord, ...] = ()
    payers: tuple[PayerRecord, ...] = ()

    @property
    def paid_income(self) -> tuple[IncomeRecord, ...]:
        """Income rows that count toward gross receipts (cash basis)."""
        return tuple(r for r in self.income if r.paid)
