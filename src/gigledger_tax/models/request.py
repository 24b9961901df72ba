"""Parameters for one export run."""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field, model_validator

from ..irs_tables import get_standard_mileage_rate

if TYPE_CHECKING:
    from ..config import ExportSettings


class ExportRequest(BaseModel):
    """What to export and how to compute it.

    The date range defaults to the full calendar tax year. Both ends are
    inclusive.

    Example:
        request = ExportRequest(tax_year=2025, include_tips=False)
    """

    model_config = {"frozen": True}

    tax_year: int = Field(ge=2000, le=2100, description="Tax year being exported")
    date_start: Optional[dt.date] = Field(default=None, description="First day included")
    date_end: Optional[dt.date] = Field(default=None, description="Last day included")
    include_tips: bool = Field(default=True, description="Count tips toward gross receipts")
    include_fees_as_deduction: bool = Field(
        default=True,
        description="File fees on line 10 instead of returns and allowances",
    )
    standard_mileage_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Dollars per mile; defaults to the IRS rate for the year",
    )
    timezone: str = Field(default="America/New_York")

    @model_validator(mode="before")
    @classmethod
    def default_date_range(cls, data: Any) -> Any:
        """Fill a missing date range with January 1 through December 31."""
        if not isinstance(data, dict):
            return data
        year = data.get("tax_year")
        if isinstance(year, int):
            data = dict(data)
            if data.get("date_start") is None:
                data["date_start"] = dt.date(year, 1, 1)
            if data.get("date_end") is None:
                data["date_end"] = dt.date(year, 12, 31)
        return data

    @model_validator(mode="after")
    def check_date_order(self) -> "ExportRequest":
        if self.date_start and self.date_end and self.date_start > self.date_end:
            raise ValueError(
                f"date_start {self.date_start} is after date_end {self.date_end}"
            )
        return self

    @classmethod
    def from_settings(
        cls,
        tax_year: int,
        settings: "ExportSettings",
        **overrides: Any,
    ) -> "ExportRequest":
        """Build a request using configured defaults, with explicit overrides."""
        values: dict[str, Any] = {
            "tax_year": tax_year,
            "include_tips": settings.include_tips,
            "include_fees_as_deduction": settings.include_fees_as_deduction,
            "timezone": settings.timezone,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def mileage_rate(self) -> Decimal:
        """Rate applied to business miles."""
        return get_standard_mileage_rate(self.tax_year, self.standard_mileage_rate)

    def contains(self, day: dt.date) -> bool:
        """Return True if day falls inside the requested range."""
        if self.date_start and day < self.date_start:
            return False
        if self.date_end and day > self.date_end:
            return False
        return True
