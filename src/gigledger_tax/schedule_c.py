"""IRS Schedule C line codes and expense category classification.

Every free-form category string maps to exactly one Schedule C line and a
deductible fraction. The lookup table below is the only place that knows
about categories; adding one is a one-line change.

Reference: https://www.irs.gov/forms-pubs/about-schedule-c-form-1040
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import NamedTuple, Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()


# =============================================================================
# LINE CODES
# =============================================================================

class ScheduleCLine(str, Enum):
    """Schedule C lines, valued by their printed line number.

    Declaration order is form order and drives the order of line items in
    every rendered output.
    """

    # Part I - Income
    GROSS_RECEIPTS = "1"
    RETURNS_ALLOWANCES = "2"
    COST_OF_GOODS_SOLD = "4"
    OTHER_INCOME = "6"

    # Part II - Expenses
    ADVERTISING = "8"
    CAR_AND_TRUCK = "9"
    COMMISSIONS_AND_FEES = "10"
    CONTRACT_LABOR = "11"
    DEPLETION = "12"
    DEPRECIATION = "13"
    INSURANCE = "15"
    INTEREST_OTHER = "16b"
    LEGAL_AND_PROFESSIONAL = "17"
    OFFICE_EXPENSE = "18"
    PENSION_PROFIT_SHARING = "19"
    RENT_VEHICLES_EQUIPMENT = "20a"
    RENT_OTHER_PROPERTY = "20b"
    REPAIRS_MAINTENANCE = "21"
    SUPPLIES = "22"
    TRAVEL = "24a"
    MEALS = "24b"
    UTILITIES = "25"
    WAGES = "26"
    OTHER_EXPENSES = "27a"


class LineDefinition(NamedTuple):
    """TXF reference number and display name for a Schedule C line."""
    ref_number: int
    name: str


LINE_DEFINITIONS: dict[ScheduleCLine, LineDefinition] = {
    ScheduleCLine.GROSS_RECEIPTS: LineDefinition(293, "Gross receipts or sales"),
    ScheduleCLine.RETURNS_ALLOWANCES: LineDefinition(296, "Returns and allowances"),
    ScheduleCLine.COST_OF_GOODS_SOLD: LineDefinition(295, "Cost of goods sold"),
    ScheduleCLine.OTHER_INCOME: LineDefinition(304, "Other income"),
    ScheduleCLine.ADVERTISING: LineDefinition(305, "Advertising"),
    ScheduleCLine.CAR_AND_TRUCK: LineDefinition(306, "Car and truck expenses"),
    ScheduleCLine.COMMISSIONS_AND_FEES: LineDefinition(307, "Commissions and fees"),
    ScheduleCLine.CONTRACT_LABOR: LineDefinition(685, "Contract labor"),
    ScheduleCLine.DEPLETION: LineDefinition(298, "Depletion"),
    ScheduleCLine.DEPRECIATION: LineDefinition(299, "Depreciation"),
    ScheduleCLine.INSURANCE: LineDefinition(301, "Insurance (other than health)"),
    ScheduleCLine.INTEREST_OTHER: LineDefinition(308, "Interest (other)"),
    ScheduleCLine.LEGAL_AND_PROFESSIONAL: LineDefinition(310, "Legal and professional services"),
    ScheduleCLine.OFFICE_EXPENSE: LineDefinition(313, "Office expense"),
    ScheduleCLine.PENSION_PROFIT_SHARING: LineDefinition(312, "Pension and profit-sharing plans"),
    ScheduleCLine.RENT_VEHICLES_EQUIPMENT: LineDefinition(314, "Rent or lease (vehicles, machinery, equipment)"),
    ScheduleCLine.RENT_OTHER_PROPERTY: LineDefinition(315, "Rent or lease (other business property)"),
    ScheduleCLine.REPAIRS_MAINTENANCE: LineDefinition(316, "Repairs and maintenance"),
    ScheduleCLine.SUPPLIES: LineDefinition(317, "Supplies"),
    ScheduleCLine.TRAVEL: LineDefinition(318, "Travel"),
    ScheduleCLine.MEALS: LineDefinition(294, "Deductible meals"),
    ScheduleCLine.UTILITIES: LineDefinition(303, "Utilities"),
    ScheduleCLine.WAGES: LineDefinition(319, "Wages"),
    ScheduleCLine.OTHER_EXPENSES: LineDefinition(302, "Other expenses"),
}

INCOME_LINES = frozenset({
    ScheduleCLine.GROSS_RECEIPTS,
    ScheduleCLine.RETURNS_ALLOWANCES,
    ScheduleCLine.COST_OF_GOODS_SOLD,
    ScheduleCLine.OTHER_INCOME,
})

EXPENSE_LINES: tuple[ScheduleCLine, ...] = tuple(
    line for line in ScheduleCLine if line not in INCOME_LINES
)


def line_definition(line: ScheduleCLine) -> LineDefinition:
    """Return the TXF reference number and display name for a line."""
    return LINE_DEFINITIONS[line]


def line_name(line: ScheduleCLine) -> str:
    """Return the human-readable name of a Schedule C line."""
    return LINE_DEFINITIONS[line].name


# =============================================================================
# CATEGORY CLASSIFICATION
# =============================================================================

FULL = Decimal("1")
HALF = Decimal("0.5")

DEFAULT_CATEGORY_LABEL = "Other"


class LineClassification(BaseModel):
    """Result of classifying an expense category."""

    model_config = {"frozen": True}

    line: ScheduleCLine = Field(description="Schedule C line the category belongs to")
    deductible_fraction: Decimal = Field(
        ge=Decimal("0"),
        le=Decimal("1"),
        description="Share of the amount that counts toward the line total",
    )
    label: str = Field(
        description="Canonical category label, used to itemize other expenses",
    )


class _Mapping(NamedTuple):
    line: ScheduleCLine
    fraction: Decimal
    label: str


# Keys are lower-cased. Legacy UI labels are kept as aliases.
CATEGORY_TABLE: dict[str, _Mapping] = {
    "meals & entertainment": _Mapping(ScheduleCLine.MEALS, HALF, "Meals & Entertainment"),
    "meals": _Mapping(ScheduleCLine.MEALS, HALF, "Meals & Entertainment"),
    "food": _Mapping(ScheduleCLine.MEALS, HALF, "Meals & Entertainment"),
    "entertainment": _Mapping(ScheduleCLine.MEALS, HALF, "Meals & Entertainment"),
    "travel": _Mapping(ScheduleCLine.TRAVEL, FULL, "Travel"),
    "lodging": _Mapping(ScheduleCLine.TRAVEL, FULL, "Lodging"),
    "marketing/promotion": _Mapping(ScheduleCLine.ADVERTISING, FULL, "Marketing/Promotion"),
    "marketing": _Mapping(ScheduleCLine.ADVERTISING, FULL, "Marketing/Promotion"),
    "advertising": _Mapping(ScheduleCLine.ADVERTISING, FULL, "Marketing/Promotion"),
    "professional fees": _Mapping(ScheduleCLine.LEGAL_AND_PROFESSIONAL, FULL, "Professional Fees"),
    "fees": _Mapping(ScheduleCLine.LEGAL_AND_PROFESSIONAL, FULL, "Professional Fees"),
    "software/subscriptions": _Mapping(ScheduleCLine.OFFICE_EXPENSE, FULL, "Software/Subscriptions"),
    "software": _Mapping(ScheduleCLine.OFFICE_EXPENSE, FULL, "Software/Subscriptions"),
    "office": _Mapping(ScheduleCLine.OFFICE_EXPENSE, FULL, "Office"),
    "supplies": _Mapping(ScheduleCLine.SUPPLIES, FULL, "Supplies"),
    "rent/studio": _Mapping(ScheduleCLine.RENT_OTHER_PROPERTY, FULL, "Rent/Studio"),
    "rent": _Mapping(ScheduleCLine.RENT_OTHER_PROPERTY, FULL, "Rent/Studio"),
    "equipment rental": _Mapping(ScheduleCLine.RENT_VEHICLES_EQUIPMENT, FULL, "Equipment Rental"),
    "insurance": _Mapping(ScheduleCLine.INSURANCE, FULL, "Insurance"),
    "repairs": _Mapping(ScheduleCLine.REPAIRS_MAINTENANCE, FULL, "Repairs"),
    "utilities": _Mapping(ScheduleCLine.UTILITIES, FULL, "Utilities"),
    "contract labor": _Mapping(ScheduleCLine.CONTRACT_LABOR, FULL, "Contract Labor"),
    "subcontractors": _Mapping(ScheduleCLine.CONTRACT_LABOR, FULL, "Contract Labor"),
    "commissions": _Mapping(ScheduleCLine.COMMISSIONS_AND_FEES, FULL, "Commissions"),
    "platform fees": _Mapping(ScheduleCLine.COMMISSIONS_AND_FEES, FULL, "Commissions"),
    "wages": _Mapping(ScheduleCLine.WAGES, FULL, "Wages"),
    "equipment/gear": _Mapping(ScheduleCLine.OTHER_EXPENSES, FULL, "Equipment/Gear"),
    "equipment": _Mapping(ScheduleCLine.OTHER_EXPENSES, FULL, "Equipment/Gear"),
    "education/training": _Mapping(ScheduleCLine.OTHER_EXPENSES, FULL, "Education/Training"),
    "education": _Mapping(ScheduleCLine.OTHER_EXPENSES, FULL, "Education/Training"),
    "other": _Mapping(ScheduleCLine.OTHER_EXPENSES, FULL, DEFAULT_CATEGORY_LABEL),
}


@lru_cache(maxsize=512)
def classify(category: Optional[str]) -> LineClassification:
    """Classify a free-form expense category.

    Never fails: unknown or blank categories land on line 27a (other
    expenses) with their own text as the itemized label.

    Args:
        category: Category text as entered by the user

    Returns:
        The line, deductible fraction and canonical label
    """
    text = (category or "").strip()
    mapping = CATEGORY_TABLE.get(text.lower())

    if mapping is None:
        if text:
            logger.debug("unknown_category_defaulted", category=text)
        return LineClassification(
            line=ScheduleCLine.OTHER_EXPENSES,
            deductible_fraction=FULL,
            label=text or DEFAULT_CATEGORY_LABEL,
        )

    return LineClassification(
        line=mapping.line,
        deductible_fraction=mapping.fraction,
        label=mapping.label,
    )


def is_meals_line(line: ScheduleCLine) -> bool:
    """Return True for the 50%-limited meals line."""
    return line is ScheduleCLine.MEALS
