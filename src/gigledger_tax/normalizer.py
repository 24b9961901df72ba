"""Turn loosely-typed data-store rows into normalized records.

The normalizer never drops a row and never raises on bad data. Anything it
cannot parse is kept as None so the validator can report it against the
record that carried it.
"""

import datetime as dt
import re
from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from .models import (
    ExpenseRecord,
    IncomeRecord,
    MileageRecord,
    NormalizedRecords,
    PayerRecord,
)
from .rounding import ZERO, to_decimal

logger = structlog.get_logger()

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_TRUE_TEXT = {"true", "yes", "y", "1"}
_FALSE_TEXT = {"false", "no", "n", "0"}


class RawExportData(BaseModel):
    """Rows for one user and one export run, exactly as fetched."""

    gigs: list[dict[str, Any]] = Field(default_factory=list)
    expenses: list[dict[str, Any]] = Field(default_factory=list)
    mileage: list[dict[str, Any]] = Field(default_factory=list)
    payers: list[dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# FIELD PARSERS
# =============================================================================

def parse_date(value: Any) -> Optional[dt.date]:
    """Parse a strict ``YYYY-MM-DD`` date.

    Date objects pass through; datetimes are truncated to their date.
    Anything else that is not a valid calendar date returns None.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not _ISO_DATE.match(text):
        return None
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _date_text(value: Any) -> Optional[str]:
    if isinstance(value, dt.date):
        return value.isoformat()
    return _text(value)


def _amount(row: dict[str, Any], key: str, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Parse a numeric field; absent or blank uses the default."""
    value = row.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return to_decimal(value)


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_TEXT:
        return True
    if text in _FALSE_TEXT:
        return False
    return default


# =============================================================================
# NORMALIZER
# =============================================================================

class RecordNormalizer:
    """Map raw rows to the closed set of normalized record types.

    Field aliases used by older data-store schemas (``vendor`` for
    ``merchant``, ``gig_id`` for ``related_gig_id``, ``business_miles`` for
    ``miles``, ...) are accepted so old rows still export.
    """

    def normalize(self, raw: RawExportData) -> NormalizedRecords:
        """Normalize every row in input order.

        Args:
            raw: Rows as fetched from the data store

        Returns:
            NormalizedRecords with one record per input row
        """
        payers = tuple(
            self._payer(row, index) for index, row in enumerate(raw.payers)
        )
        payer_by_id = {p.id: p for p in payers}

        records = NormalizedRecords(
            income=tuple(
                self._income(row, index, payer_by_id)
                for index, row in enumerate(raw.gigs)
            ),
            expenses=tuple(
                self._expense(row, index) for index, row in enumerate(raw.expenses)
            ),
            mileage=tuple(
                self._mileage(row, index) for index, row in enumerate(raw.mileage)
            ),
            payers=payers,
        )

        logger.info(
            "records_normalized",
            income=len(records.income),
            expenses=len(records.expenses),
            mileage=len(records.mileage),
            payers=len(records.payers),
        )
        return records

    @staticmethod
    def _record_id(row: dict[str, Any], kind: str, index: int) -> str:
        return _text(row.get("id")) or f"{kind}-{index}"

    def _payer(self, row: dict[str, Any], index: int) -> PayerRecord:
        return PayerRecord(
            id=self._record_id(row, "payer", index),
            name=_text(row.get("name")),
            email=_text(row.get("email") or row.get("contact_email")),
            phone=_text(row.get("phone")),
            tax_id_hint=_text(row.get("tax_id_hint") or row.get("ein_or_ssn")),
            notes=_text(row.get("notes")),
        )

    def _income(
        self,
        row: dict[str, Any],
        index: int,
        payer_by_id: dict[str, PayerRecord],
    ) -> IncomeRecord:
        payer_id = _text(row.get("payer_id"))
        payer = payer_by_id.get(payer_id) if payer_id else None

        payer_name = _text(row.get("payer_name")) or (payer.name if payer else None)
        payer_tax_id_hint = (
            _text(row.get("payer_tax_id_hint") or row.get("payer_ein_or_ssn"))
            or (payer.tax_id_hint if payer else None)
        )

        return IncomeRecord(
            id=self._record_id(row, "income", index),
            date=parse_date(row.get("date")),
            date_text=_date_text(row.get("date")),
            title=_text(row.get("title")),
            payer_id=payer_id,
            payer_name=payer_name,
            payer_email=_text(row.get("payer_email")) or (payer.email if payer else None),
            payer_phone=_text(row.get("payer_phone")) or (payer.phone if payer else None),
            payer_tax_id_hint=payer_tax_id_hint,
            gross_amount=_amount(row, "gross_amount"),
            tips=_amount(row, "tips"),
            per_diem=_amount(row, "per_diem"),
            other_income=_amount(row, "other_income"),
            fees=_amount(row, "fees"),
            paid=_flag(row.get("paid"), default=True),
            currency=(_text(row.get("currency")) or "USD").upper(),
            city=_text(row.get("city")),
            state=_text(row.get("state")),
            notes=_text(row.get("notes")),
        )

    def _expense(self, row: dict[str, Any], index: int) -> ExpenseRecord:
        override_raw = row.get("deductible_fraction", row.get("meals_percent_allowed"))
        return ExpenseRecord(
            id=self._record_id(row, "expense", index),
            date=parse_date(row.get("date")),
            date_text=_date_text(row.get("date")),
            merchant=_text(row.get("merchant") or row.get("vendor")),
            description=_text(row.get("description")),
            category=_text(row.get("category")),
            amount=_amount(row, "amount", default=None),
            deductible_fraction_override=(
                None if _text(override_raw) is None else to_decimal(override_raw)
            ),
            receipt_url=_text(row.get("receipt_url")),
            notes=_text(row.get("notes")),
            related_gig_id=_text(row.get("related_gig_id") or row.get("gig_id")),
            currency=(_text(row.get("currency")) or "USD").upper(),
        )

    def _mileage(self, row: dict[str, Any], index: int) -> MileageRecord:
        miles_key = "miles" if "miles" in row else "business_miles"
        return MileageRecord(
            id=self._record_id(row, "mileage", index),
            date=parse_date(row.get("date")),
            date_text=_date_text(row.get("date")),
            origin=_text(row.get("origin")),
            destination=_text(row.get("destination")),
            purpose=_text(row.get("purpose")),
            miles=_amount(row, miles_key, default=None),
            is_estimate=_flag(row.get("is_estimate"), default=False),
            notes=_text(row.get("notes")),
            related_gig_id=_text(row.get("related_gig_id") or row.get("gig_id")),
        )
